from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from ..config.channels import ChannelId

if TYPE_CHECKING:
    from ..core.sample_buffer import SampleBuffer


@dataclass(frozen=True)
class PeakRateConfig:
    """
    Parameters for a peak-counting rate estimate.

    Notes
    -----
    ``per_minute_scale`` converts a peak count over the window into events
    per minute, i.e. ``60 / window_seconds``.
    """

    window_samples: int
    threshold: float
    per_minute_scale: float

    @classmethod
    def from_window(
        cls,
        window_seconds: float,
        sample_rate_hz: float,
        threshold: float,
    ) -> PeakRateConfig:
        if window_seconds <= 0 or sample_rate_hz <= 0:
            raise ValueError("window_seconds and sample_rate_hz must be positive")
        window_samples = max(3, int(round(window_seconds * sample_rate_hz)))
        return cls(
            window_samples=window_samples,
            threshold=float(threshold),
            per_minute_scale=60.0 / float(window_seconds),
        )


# 2 s of ECG and 10 s of respiration at the nominal 20 Hz stream rate.
HEART_RATE = PeakRateConfig.from_window(2.0, 20.0, threshold=0.5)
RESPIRATORY_RATE = PeakRateConfig.from_window(10.0, 20.0, threshold=0.2)


def count_peaks(values: Sequence[float] | np.ndarray, threshold: float) -> int:
    """
    Count local maxima strictly above ``threshold``.

    A sample is a peak when it is strictly greater than both neighbours; the
    first and last samples never count.
    """
    y = np.asarray(values, dtype=np.float64).reshape(-1)
    if y.size < 3:
        return 0
    mid = y[1:-1]
    mask = (mid > threshold) & (mid > y[:-2]) & (mid > y[2:])
    return int(np.count_nonzero(mask))


def estimate_rate(values: Sequence[float] | np.ndarray, cfg: PeakRateConfig) -> int:
    """
    Return events per minute over the trailing ``cfg.window_samples`` values.

    Fewer samples than the window means there is not enough history yet and
    the estimate is ``0``.
    """
    y = np.asarray(values, dtype=np.float64).reshape(-1)
    if y.size < cfg.window_samples:
        return 0
    peaks = count_peaks(y[-cfg.window_samples :], cfg.threshold)
    return int(round(peaks * cfg.per_minute_scale))


class VitalEstimator:
    """Stateless heart/respiratory rate estimates recomputed from the buffer."""

    def __init__(
        self,
        buffer: SampleBuffer,
        heart: PeakRateConfig = HEART_RATE,
        respiration: PeakRateConfig = RESPIRATORY_RATE,
    ) -> None:
        self._buffer = buffer
        self.heart = heart
        self.respiration = respiration

    def _rate(self, channel_id: ChannelId, cfg: PeakRateConfig) -> int:
        _, values = self._buffer.tail(channel_id, cfg.window_samples)
        return estimate_rate(values, cfg)

    def heart_rate(self) -> int:
        return self._rate(ChannelId.ECG, self.heart)

    def respiratory_rate(self) -> int:
        return self._rate(ChannelId.RESP, self.respiration)


class VitalStatus(str, Enum):
    NO_SENSOR = "No Sensor"
    NORMAL = "Normal"
    WARNING = "Warning"
    CRITICAL = "Critical"


@dataclass(frozen=True)
class VitalThresholds:
    low: float
    high: float
    critical_low: float
    critical_high: float


THRESHOLDS = {
    "hr": VitalThresholds(60.0, 100.0, 40.0, 150.0),
    "spo2": VitalThresholds(95.0, 100.0, 90.0, 100.0),
    "resp": VitalThresholds(12.0, 20.0, 8.0, 30.0),
    "bp_systolic": VitalThresholds(90.0, 140.0, 70.0, 180.0),
    "temp": VitalThresholds(36.5, 37.5, 35.0, 39.0),
}


def classify(value: Optional[float], thresholds: VitalThresholds) -> VitalStatus:
    """Map a reading onto the Normal / Warning / Critical bands."""
    if value is None:
        return VitalStatus.NO_SENSOR
    if value < thresholds.critical_low or value > thresholds.critical_high:
        return VitalStatus.CRITICAL
    if value < thresholds.low or value > thresholds.high:
        return VitalStatus.WARNING
    return VitalStatus.NORMAL


@dataclass(frozen=True)
class VitalReading:
    value: Optional[float]
    status: VitalStatus

    @property
    def available(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class BloodPressure:
    systolic: float
    diastolic: float


@dataclass(frozen=True)
class VitalsReport:
    """Everything the vitals cards need after one envelope."""

    timestamp: float
    heart_rate: VitalReading
    spo2: VitalReading
    respiratory_rate: VitalReading
    blood_pressure: Optional[BloodPressure]
    blood_pressure_status: VitalStatus
    temp_core: VitalReading
    temp_skin: VitalReading


def _rate_reading(rate: int, thresholds: VitalThresholds) -> VitalReading:
    # A zero rate is "no estimate yet", not a reading of zero.
    if rate <= 0:
        return VitalReading(None, VitalStatus.NO_SENSOR)
    return VitalReading(float(rate), classify(float(rate), thresholds))


def _reading(value: Optional[float], thresholds: VitalThresholds) -> VitalReading:
    return VitalReading(value, classify(value, thresholds))


def build_vitals_report(
    *,
    timestamp: float,
    heart_rate: int,
    respiratory_rate: int,
    spo2: Optional[float],
    bp_systolic: Optional[float],
    bp_diastolic: Optional[float],
    temp_core: Optional[float],
    temp_skin: Optional[float],
    nibp_attached: bool,
    temp_attached: bool,
) -> VitalsReport:
    """Combine estimates and pass-through vitals into a :class:`VitalsReport`."""
    spo2_value = float(round(spo2)) if spo2 is not None else None

    blood_pressure: Optional[BloodPressure] = None
    if nibp_attached and bp_systolic is not None and bp_diastolic is not None:
        blood_pressure = BloodPressure(bp_systolic, bp_diastolic)
    bp_status = classify(
        blood_pressure.systolic if blood_pressure else None,
        THRESHOLDS["bp_systolic"],
    )

    if not temp_attached:
        temp_core = temp_skin = None

    return VitalsReport(
        timestamp=timestamp,
        heart_rate=_rate_reading(heart_rate, THRESHOLDS["hr"]),
        spo2=_reading(spo2_value, THRESHOLDS["spo2"]),
        respiratory_rate=_rate_reading(respiratory_rate, THRESHOLDS["resp"]),
        blood_pressure=blood_pressure,
        blood_pressure_status=bp_status,
        temp_core=_reading(temp_core, THRESHOLDS["temp"]),
        temp_skin=_reading(temp_skin, THRESHOLDS["temp"]),
    )


__all__ = [
    "BloodPressure",
    "HEART_RATE",
    "PeakRateConfig",
    "RESPIRATORY_RATE",
    "THRESHOLDS",
    "VitalEstimator",
    "VitalReading",
    "VitalStatus",
    "VitalThresholds",
    "VitalsReport",
    "build_vitals_report",
    "classify",
    "count_peaks",
    "estimate_rate",
]
