"""
Decoding of inbound stream messages into :class:`StreamEnvelope` objects.

Each server-sent event carries one JSON object::

    {"timestamp": 12.35, "ecg": 0.61, "spo2": 97.8, "resp": 0.12,
     "pleth": 0.74, "bp_systolic": 121.0, "bp_diastolic": 80.5,
     "temp_cavity": 37.2, "temp_skin": 36.8,
     "sensors": {"ecg": true, "spo2": true, "resp": true,
                 "nibp": true, "temp": true}}

Every field except ``timestamp`` is optional; an absent field means "no new
value this tick", never zero.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..config.channels import ChannelId

logger = logging.getLogger(__name__)

_VITAL_FIELDS = {
    "bp_systolic": "bp_systolic",
    "bp_diastolic": "bp_diastolic",
    "temp_cavity": "temp_core",
    "temp_skin": "temp_skin",
}


class EnvelopeDecodeError(ValueError):
    """A single inbound message could not be decoded; it is dropped."""


@dataclass(frozen=True)
class VitalSigns:
    bp_systolic: Optional[float] = None
    bp_diastolic: Optional[float] = None
    temp_core: Optional[float] = None
    temp_skin: Optional[float] = None


@dataclass(frozen=True)
class StreamEnvelope:
    timestamp: float
    values: Dict[ChannelId, float] = field(default_factory=dict)
    vitals: VitalSigns = field(default_factory=VitalSigns)
    sensors: Dict[str, bool] = field(default_factory=dict)

    def value(self, channel_id: ChannelId) -> Optional[float]:
        return self.values.get(channel_id)


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _decode_sensors(raw: Any) -> Dict[str, bool]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        logger.debug("Ignoring non-object sensors field: %r", raw)
        return {}
    sensors: Dict[str, bool] = {}
    for name, attached in raw.items():
        if isinstance(attached, bool):
            sensors[str(name)] = attached
        else:
            logger.debug("Ignoring non-boolean sensor flag %r=%r", name, attached)
    return sensors


def envelope_from_record(record: Mapping[str, Any]) -> StreamEnvelope:
    """Build an envelope from an already-parsed JSON object."""
    if "timestamp" not in record:
        raise EnvelopeDecodeError("Record missing timestamp")
    timestamp = _coerce_number(record["timestamp"])
    if timestamp is None:
        raise EnvelopeDecodeError(f"Record has unusable timestamp: {record['timestamp']!r}")

    values: Dict[ChannelId, float] = {}
    for channel_id in ChannelId:
        if channel_id.value not in record:
            continue
        raw = record[channel_id.value]
        number = _coerce_number(raw)
        if number is None:
            logger.debug("Dropping non-numeric %s value: %r", channel_id.value, raw)
            continue
        values[channel_id] = number

    vitals: Dict[str, float] = {}
    for key, attr in _VITAL_FIELDS.items():
        if key not in record:
            continue
        number = _coerce_number(record[key])
        if number is None:
            logger.debug("Dropping non-numeric %s value: %r", key, record[key])
            continue
        vitals[attr] = number

    return StreamEnvelope(
        timestamp=timestamp,
        values=values,
        vitals=VitalSigns(**vitals),
        sensors=_decode_sensors(record.get("sensors")),
    )


def decode_envelope(payload: str | bytes) -> StreamEnvelope:
    """
    Decode one message payload.

    Raises :class:`EnvelopeDecodeError` for malformed JSON, non-object
    payloads or a missing/invalid ``timestamp``.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EnvelopeDecodeError(f"Payload is not UTF-8: {exc}") from exc
    try:
        record = json.loads(payload)
    except ValueError as exc:
        # JSONDecodeError, and the int digit limit on huge integer literals.
        raise EnvelopeDecodeError(f"Malformed JSON: {exc}") from exc
    if not isinstance(record, Mapping):
        raise EnvelopeDecodeError(f"Expected JSON object, got {type(record).__name__}")
    return envelope_from_record(record)


__all__ = [
    "EnvelopeDecodeError",
    "StreamEnvelope",
    "VitalSigns",
    "decode_envelope",
    "envelope_from_record",
]
