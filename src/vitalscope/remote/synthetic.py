"""Synthetic vitals source for running the monitor without a server."""

from __future__ import annotations

import json
import logging
import math
import time
from typing import Any, Callable, Dict, Iterable, Optional

from PySide6.QtCore import QObject, QTimer, Qt

from .transport import ErrorCallback, MessageCallback, OpenCallback, TransportFactory

logger = logging.getLogger(__name__)

DEMO_HEART_RATE_BPM = 75.0
DEMO_RESP_RATE_HZ = 0.3
SENSOR_NAMES = ("ecg", "spo2", "resp", "nibp", "temp")


def _wave(phase: float, centre: float, width: float, height: float) -> float:
    return height * math.exp(-0.5 * ((phase - centre) / width) ** 2)


def _ecg_shape(phase: float) -> float:
    """
    One P-QRS-T cycle; ``phase`` is the position within the beat in [0, 1).

    The R wave is wide enough that a 20 Hz stream still samples it above
    the heart-rate threshold on every beat.
    """
    return (
        _wave(phase, 0.10, 0.030, 0.15)
        + _wave(phase, 0.21, 0.010, -0.10)
        + _wave(phase, 0.25, 0.040, 1.10)
        + _wave(phase, 0.29, 0.010, -0.08)
        + _wave(phase, 0.55, 0.060, 0.30)
    )


def _pleth_shape(phase: float) -> float:
    if phase < 0.3:
        return (phase / 0.3) ** 2
    if phase < 0.5:
        return 1.0 - 0.15 * math.sin((phase - 0.3) / 0.2 * math.pi)
    return 0.85 * math.exp(-3.0 * (phase - 0.5) / 0.5)


def generate_payload(t: float, sensors: Optional[Dict[str, bool]] = None) -> Dict[str, Any]:
    """
    Return one stream record for time ``t`` (seconds since start).

    Values for detached sensors are omitted, as a real bedside unit would.
    """
    attached = {name: True for name in SENSOR_NAMES}
    if sensors:
        attached.update(sensors)

    beat = 60.0 / DEMO_HEART_RATE_BPM
    phase = math.fmod(t, beat) / beat
    drift = math.sin(2.0 * math.pi * 0.02 * t)
    temp_drift = 0.2 * math.sin(2.0 * math.pi * 0.01 * t)

    record: Dict[str, Any] = {"timestamp": round(t, 4)}
    if attached["ecg"]:
        record["ecg"] = 0.3 + 0.5 * _ecg_shape(phase)
    if attached["spo2"]:
        record["spo2"] = 97.5 + drift
        record["pleth"] = _pleth_shape(phase) + 0.02 * math.sin(2.0 * math.pi * DEMO_RESP_RATE_HZ * t)
    if attached["resp"]:
        record["resp"] = 0.5 + 0.4 * math.sin(2.0 * math.pi * DEMO_RESP_RATE_HZ * t)
    if attached["nibp"]:
        record["bp_systolic"] = 120.0 + 5.0 * drift
        record["bp_diastolic"] = 80.0 + 2.5 * drift
    if attached["temp"]:
        record["temp_cavity"] = 37.2 + temp_drift
        record["temp_skin"] = 36.8 + temp_drift * 0.8
    record["sensors"] = attached
    return record


class SyntheticTransport(QObject):
    """Timer-driven transport emitting :func:`generate_payload` records as JSON."""

    def __init__(
        self,
        rate_hz: float = 20.0,
        *,
        detached: Iterable[str] = (),
        clock: Callable[[], float] = time.monotonic,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        if rate_hz <= 0:
            raise ValueError("rate_hz must be positive")
        self._rate_hz = float(rate_hz)
        self._sensors = {name: name not in set(detached) for name in SENSOR_NAMES}
        self._clock = clock
        self._start = 0.0
        self._on_message: MessageCallback | None = None
        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.PreciseTimer)
        self._timer.setInterval(max(1, int(round(1000.0 / self._rate_hz))))
        self._timer.timeout.connect(self._on_tick)

    def open(
        self,
        on_open: OpenCallback,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._on_message = on_message
        self._start = self._clock()
        logger.info("Synthetic stream running at %.1f Hz", self._rate_hz)
        self._timer.start()
        on_open()

    def close(self) -> None:
        self._timer.stop()
        self._on_message = None

    def _on_tick(self) -> None:
        if self._on_message is None:
            return
        payload = generate_payload(self._clock() - self._start, self._sensors)
        self._on_message(json.dumps(payload))


def synthetic_transport_factory(
    rate_hz: float = 20.0,
    *,
    detached: Iterable[str] = (),
) -> TransportFactory:
    detached = tuple(detached)

    def _factory() -> SyntheticTransport:
        return SyntheticTransport(rate_hz, detached=detached)

    return _factory


__all__ = [
    "SENSOR_NAMES",
    "SyntheticTransport",
    "generate_payload",
    "synthetic_transport_factory",
]
