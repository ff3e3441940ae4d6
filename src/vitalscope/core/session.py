"""Per-session application context tying buffers, gate and estimator together."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from ..analysis.vitals import PeakRateConfig, VitalEstimator, VitalsReport, build_vitals_report
from ..config.channels import Channel, ChannelId, create_channels
from ..config.runtime import MonitorConfig
from .envelope import StreamEnvelope
from .sample_buffer import SampleBuffer
from .sensor_gate import SensorGate

logger = logging.getLogger(__name__)

# Sensor that must be attached for a held pass-through vital to stay on screen.
VITAL_SENSORS: Dict[str, str] = {
    "spo2": "spo2",
    "bp_systolic": "nibp",
    "bp_diastolic": "nibp",
    "temp_core": "temp",
    "temp_skin": "temp",
}


class MonitorSession:
    """
    State for one monitoring session.

    One instance is constructed at startup and passed explicitly to the
    stream client, the renderer and the window. It is the only owner of the
    sample buffer; everybody else reads copies.
    """

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = (config or MonitorConfig()).validated()
        self.channels: Dict[ChannelId, Channel] = create_channels(self.config.channel_specs())
        self.buffer = SampleBuffer(self.channels.keys(), capacity=self.config.buffer_capacity)
        self.gate = SensorGate(self.channels)
        self.estimator = VitalEstimator(
            self.buffer,
            heart=PeakRateConfig.from_window(
                self.config.heart_window_seconds,
                self.config.nominal_rate_hz,
                self.config.heart_threshold,
            ),
            respiration=PeakRateConfig.from_window(
                self.config.resp_window_seconds,
                self.config.nominal_rate_hz,
                self.config.resp_threshold,
            ),
        )
        self._clock = clock
        self._started_monotonic = clock()
        self.started_at = datetime.now().astimezone()
        self.total_data_points = 0
        self.envelope_count = 0
        self.latest_timestamp: Optional[float] = None
        self.latest_report: Optional[VitalsReport] = None
        self._held_vitals: Dict[str, float] = {}

    def handle_envelope(self, envelope: StreamEnvelope) -> VitalsReport:
        """
        Feed one decoded envelope into the session.

        Channel values are appended before sensor flags are applied and the
        vitals are recomputed, so the report always reflects this envelope.
        Pass-through vitals absent from the envelope keep their last value
        until their sensor is reported detached.
        """
        for channel_id, value in envelope.values.items():
            self.buffer.append(channel_id, envelope.timestamp, value)
            self.total_data_points += 1

        if envelope.sensors:
            self.gate.apply_sensors(envelope.sensors)

        self.envelope_count += 1
        self.latest_timestamp = envelope.timestamp
        self._remember_vitals(envelope)
        held = self._held_vitals
        report = build_vitals_report(
            timestamp=envelope.timestamp,
            heart_rate=self.estimator.heart_rate(),
            respiratory_rate=self.estimator.respiratory_rate(),
            spo2=held.get("spo2"),
            bp_systolic=held.get("bp_systolic"),
            bp_diastolic=held.get("bp_diastolic"),
            temp_core=held.get("temp_core"),
            temp_skin=held.get("temp_skin"),
            nibp_attached=self.gate.is_attached("nibp"),
            temp_attached=self.gate.is_attached("temp"),
        )
        self.latest_report = report
        return report

    def _remember_vitals(self, envelope: StreamEnvelope) -> None:
        vitals = envelope.vitals
        fresh = {
            "spo2": envelope.value(ChannelId.SPO2),
            "bp_systolic": vitals.bp_systolic,
            "bp_diastolic": vitals.bp_diastolic,
            "temp_core": vitals.temp_core,
            "temp_skin": vitals.temp_skin,
        }
        for name, value in fresh.items():
            if value is not None:
                self._held_vitals[name] = value
        for name, sensor in VITAL_SENSORS.items():
            if not self.gate.is_attached(sensor):
                self._held_vitals.pop(name, None)

    def session_duration_s(self) -> int:
        """Whole seconds elapsed since the session started."""
        return int(max(0.0, self._clock() - self._started_monotonic))

    def set_channel_enabled(self, channel_id: ChannelId, enabled: bool) -> bool:
        """User toggle for a waveform; sensor attachment still wins."""
        return self.gate.set_manual_enabled(channel_id, enabled)


__all__ = ["MonitorSession", "VITAL_SENSORS"]
