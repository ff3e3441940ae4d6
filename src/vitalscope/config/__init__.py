"""Configuration objects and helpers for VitalScope.

Two layers live here:
- :mod:`channels` is the static channel registry (ids, colors, display
  ranges, paint rates) plus validation of per-channel overrides.
- :mod:`runtime` loads the YAML monitor configuration (stream URL, window,
  buffer capacity, reconnect delay, estimator windows) into a typed
  dataclass that is consumed once at startup.
"""

from .channels import (
    Channel,
    ChannelId,
    ChannelSpec,
    ConfigError,
    DEFAULT_CHANNELS,
    ValueRange,
    build_channel_specs,
    create_channels,
)
from .runtime import MonitorConfig, config_from_mapping, load_config

__all__ = [
    "Channel",
    "ChannelId",
    "ChannelSpec",
    "ConfigError",
    "DEFAULT_CHANNELS",
    "MonitorConfig",
    "ValueRange",
    "build_channel_specs",
    "config_from_mapping",
    "create_channels",
    "load_config",
]
