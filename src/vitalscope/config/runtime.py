"""Runtime configuration for the monitor: stream, buffer, window and estimators."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

import yaml

from .channels import ChannelId, ChannelSpec, ConfigError, build_channel_specs

DEFAULT_STREAM_URL = "http://127.0.0.1:8080/ws"


@dataclass(slots=True)
class MonitorConfig:
    """
    Tuning knobs consumed once at startup.

    The defaults match a 20 Hz vitals stream shown in a 6 second window.
    """

    stream_url: str = DEFAULT_STREAM_URL
    window_seconds: float = 6.0
    buffer_capacity: int = 600
    reconnect_delay_ms: int = 2000
    nominal_rate_hz: float = 20.0
    paint_interval_ms: int = 16

    heart_window_seconds: float = 2.0
    heart_threshold: float = 0.5
    resp_window_seconds: float = 10.0
    resp_threshold: float = 0.2

    demo: bool = False
    demo_rate_hz: float = 20.0

    channels: Dict[str, Any] = field(default_factory=dict)

    def validated(self) -> MonitorConfig:
        """Return a normalized copy or raise :class:`ConfigError`."""
        window = _positive_float(self.window_seconds, "window_seconds")
        capacity = _positive_int(self.buffer_capacity, "buffer_capacity")
        delay = _positive_int(self.reconnect_delay_ms, "reconnect_delay_ms")
        rate = _positive_float(self.nominal_rate_hz, "nominal_rate_hz")
        paint = _positive_int(self.paint_interval_ms, "paint_interval_ms")
        heart_window = _positive_float(self.heart_window_seconds, "heart_window_seconds")
        resp_window = _positive_float(self.resp_window_seconds, "resp_window_seconds")
        demo_rate = _positive_float(self.demo_rate_hz, "demo_rate_hz")

        url = str(self.stream_url or "").strip()
        if not self.demo and not url:
            raise ConfigError("stream_url is required unless demo mode is enabled")

        channels = dict(self.channels or {})
        # Surface bad channel overrides now rather than when the window opens.
        build_channel_specs(channels)

        return replace(
            self,
            stream_url=url,
            window_seconds=window,
            buffer_capacity=capacity,
            reconnect_delay_ms=delay,
            nominal_rate_hz=rate,
            paint_interval_ms=paint,
            heart_window_seconds=heart_window,
            heart_threshold=float(self.heart_threshold),
            resp_window_seconds=resp_window,
            resp_threshold=float(self.resp_threshold),
            demo=bool(self.demo),
            demo_rate_hz=demo_rate,
            channels=channels,
        )

    def channel_specs(self) -> Dict[ChannelId, ChannelSpec]:
        return build_channel_specs(self.channels)


def _positive_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number) or number <= 0.0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return number


def _positive_int(value: Any, name: str) -> int:
    number = _positive_float(value, name)
    if number != int(number):
        raise ConfigError(f"{name} must be a whole number, got {value!r}")
    return int(number)


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`MonitorConfig`."""
    return {f.name for f in fields(MonitorConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten an optional top-level ``monitor`` block."""
    if "monitor" in data and isinstance(data["monitor"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "monitor":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> MonitorConfig:
    """Build a validated :class:`MonitorConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return MonitorConfig().validated()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    channels = payload.get("channels")
    if channels is not None and not isinstance(channels, Mapping):
        raise ConfigError(f"channels must be a mapping, got {type(channels).__name__}")
    return MonitorConfig(**payload).validated()


def load_config(path: str | Path | None) -> MonitorConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to the default :class:`MonitorConfig`.
    """
    if path is None:
        return MonitorConfig().validated()
    cfg_path = Path(path).expanduser()
    if not cfg_path.exists():
        return MonitorConfig().validated()
    with cfg_path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {cfg_path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["DEFAULT_STREAM_URL", "MonitorConfig", "config_from_mapping", "load_config"]
