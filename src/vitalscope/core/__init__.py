"""Core streaming pipeline: envelopes, buffers, visibility and the session.

This package sits between the remote stream client and the GUI. Decoded
envelopes are appended to per-channel :class:`SampleBuffer` series, sensor
flags drive the :class:`SensorGate`, and :class:`MonitorSession` owns all of
it for the lifetime of one monitoring session.
"""

from .envelope import EnvelopeDecodeError, StreamEnvelope, VitalSigns, decode_envelope
from .sample_buffer import Sample, SampleBuffer, SampleSeries
from .sensor_gate import SensorGate
from .session import MonitorSession

__all__ = [
    "EnvelopeDecodeError",
    "MonitorSession",
    "Sample",
    "SampleBuffer",
    "SampleSeries",
    "SensorGate",
    "StreamEnvelope",
    "VitalSigns",
    "decode_envelope",
]
