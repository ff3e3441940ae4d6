"""Static description of the waveform channels shown by the monitor."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ConfigError(ValueError):
    """Raised at startup when the monitor configuration cannot be used."""


class ChannelId(str, Enum):
    ECG = "ecg"
    SPO2 = "spo2"
    RESP = "resp"
    PLETH = "pleth"


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class ChannelSpec:
    """Display configuration for one signal channel."""

    id: ChannelId
    label: str
    color: str
    value_range: ValueRange
    target_frame_rate: float = 30.0
    units: str = ""

    @property
    def frame_interval_ms(self) -> float:
        """Minimum time between two paints of this channel."""
        return 1000.0 / self.target_frame_rate


DEFAULT_CHANNELS: Dict[ChannelId, ChannelSpec] = {
    ChannelId.ECG: ChannelSpec(
        id=ChannelId.ECG,
        label="ECG",
        color="#10b981",
        value_range=ValueRange(0.0, 1.2),
        units="mV",
    ),
    ChannelId.SPO2: ChannelSpec(
        id=ChannelId.SPO2,
        label="SpO₂",
        color="#a78bfa",
        value_range=ValueRange(95.0, 100.0),
        units="%",
    ),
    ChannelId.RESP: ChannelSpec(
        id=ChannelId.RESP,
        label="Resp",
        color="#60a5fa",
        value_range=ValueRange(0.0, 1.0),
    ),
    ChannelId.PLETH: ChannelSpec(
        id=ChannelId.PLETH,
        label="Pleth",
        color="#f59e0b",
        value_range=ValueRange(0.0, 1.2),
    ),
}


@dataclass
class Channel:
    """
    Per-session channel state.

    ``visible`` is owned by :class:`~vitalscope.core.sensor_gate.SensorGate`;
    other components only read it.
    """

    spec: ChannelSpec
    visible: bool = True
    attached: bool = True
    manual_enabled: bool = True

    @property
    def id(self) -> ChannelId:
        return self.spec.id


def parse_channel_id(value: Any) -> ChannelId:
    """Return the :class:`ChannelId` named by ``value`` or raise ``ConfigError``."""
    if isinstance(value, ChannelId):
        return value
    try:
        return ChannelId(str(value).strip().lower())
    except ValueError:
        known = ", ".join(c.value for c in ChannelId)
        raise ConfigError(f"Unknown channel {value!r} (expected one of: {known})") from None


def _coerce_float(value: Any, what: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{what} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{what} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigError(f"{what} must be finite, got {value!r}")
    return number


def _apply_override(spec: ChannelSpec, override: Mapping[str, Any]) -> ChannelSpec:
    name = spec.id.value
    changes: Dict[str, Any] = {}

    if "color" in override:
        changes["color"] = str(override["color"])
    if "label" in override:
        changes["label"] = str(override["label"])
    if "units" in override:
        changes["units"] = str(override["units"])

    raw_range = override.get("value_range", override.get("range"))
    if raw_range is not None:
        if isinstance(raw_range, Mapping):
            lo, hi = raw_range.get("min"), raw_range.get("max")
        elif isinstance(raw_range, (list, tuple)) and len(raw_range) == 2:
            lo, hi = raw_range
        else:
            raise ConfigError(f"{name}.value_range must be {{min, max}}, got {raw_range!r}")
        lo_f = _coerce_float(lo, f"{name}.value_range.min")
        hi_f = _coerce_float(hi, f"{name}.value_range.max")
        if hi_f <= lo_f:
            raise ConfigError(f"{name}.value_range is empty ({lo_f} >= {hi_f})")
        changes["value_range"] = ValueRange(lo_f, hi_f)

    fps = override.get("target_frame_rate", override.get("fps"))
    if fps is not None:
        fps_f = _coerce_float(fps, f"{name}.target_frame_rate")
        if fps_f <= 0.0:
            raise ConfigError(f"{name}.target_frame_rate must be positive, got {fps_f}")
        changes["target_frame_rate"] = fps_f

    return replace(spec, **changes) if changes else spec


def build_channel_specs(
    overrides: Optional[Mapping[str, Any]] = None,
) -> Dict[ChannelId, ChannelSpec]:
    """
    Return the channel registry with optional per-channel overrides applied.

    ``overrides`` maps a channel name (``"ecg"``, ``"spo2"``...) to a mapping
    with any of ``color``, ``label``, ``units``, ``value_range`` and
    ``target_frame_rate``.
    """
    specs = dict(DEFAULT_CHANNELS)
    if not overrides:
        return specs
    if not isinstance(overrides, Mapping):
        raise ConfigError(f"channels must be a mapping, got {type(overrides).__name__}")
    for key, override in overrides.items():
        channel_id = parse_channel_id(key)
        if override is None:
            continue
        if not isinstance(override, Mapping):
            raise ConfigError(f"channels.{channel_id.value} must be a mapping")
        specs[channel_id] = _apply_override(specs[channel_id], override)
    return specs


def create_channels(specs: Mapping[ChannelId, ChannelSpec]) -> Dict[ChannelId, Channel]:
    """Create the mutable per-session channel records, in registry order."""
    missing = [c.value for c in ChannelId if c not in specs]
    if missing:
        raise ConfigError(f"Missing channel configuration for: {', '.join(missing)}")
    return {channel_id: Channel(spec=specs[channel_id]) for channel_id in ChannelId}


__all__ = [
    "Channel",
    "ChannelId",
    "ChannelSpec",
    "ConfigError",
    "DEFAULT_CHANNELS",
    "ValueRange",
    "build_channel_specs",
    "create_channels",
    "parse_channel_id",
]
