"""Time-windowed waveform rendering, decoupled from data arrival."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Mapping, Optional, Protocol

import numpy as np

from ..config.channels import Channel, ChannelId, ValueRange
from ..core.sample_buffer import SampleBuffer

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 6.0
MAX_FRAMES_TRACKED = 120


class WaveformSurface(Protocol):
    """Something a single channel's trace can be drawn onto."""

    @property
    def width(self) -> float:  # pragma: no cover - protocol
        ...

    @property
    def height(self) -> float:  # pragma: no cover - protocol
        ...

    def draw_path(self, xs: np.ndarray, ys: np.ndarray, color: str) -> None:  # pragma: no cover - protocol
        ...


def compute_waveform_path(
    times: np.ndarray,
    values: np.ndarray,
    window_seconds: float,
    width: float,
    height: float,
    value_range: ValueRange,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Map the trailing ``window_seconds`` of a series onto surface coordinates.

    The window ends at the newest sample. Samples outside
    ``[t_last - window_seconds, t_last]`` are dropped, the rest keep their
    order and form one polyline. ``x`` grows with time from 0 to ``width``;
    ``y`` is inverted so larger values sit higher. Values outside
    ``value_range`` are not clamped.
    """
    t = np.asarray(times, dtype=np.float64).reshape(-1)
    v = np.asarray(values, dtype=np.float64).reshape(-1)
    if t.size == 0 or t.size != v.size:
        return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)

    current = t[-1]
    start = current - window_seconds
    mask = (t >= start) & (t <= current)
    t = t[mask]
    v = v[mask]

    xs = (t - start) / window_seconds * width
    ys = height - ((v - value_range.min) / value_range.span) * height
    return xs, ys


@dataclass
class RenderStats:
    """Recent frame timings for the footer readout."""

    frame_times: Deque[float] = field(default_factory=lambda: deque(maxlen=MAX_FRAMES_TRACKED))
    frame_durations: Deque[float] = field(default_factory=lambda: deque(maxlen=MAX_FRAMES_TRACKED))
    paints: Dict[ChannelId, int] = field(default_factory=dict)

    def record_frame(self, start_ts: float, end_ts: float, painted: List[ChannelId]) -> None:
        if not painted:
            return
        self.frame_times.append(end_ts)
        self.frame_durations.append(end_ts - start_ts)
        for channel_id in painted:
            self.paints[channel_id] = self.paints.get(channel_id, 0) + 1

    def fps(self) -> float:
        if len(self.frame_times) < 2:
            return 0.0
        span = self.frame_times[-1] - self.frame_times[0]
        if span <= 0:
            return 0.0
        return (len(self.frame_times) - 1) / span

    def avg_frame_ms(self) -> float:
        if not self.frame_durations:
            return 0.0
        return 1000.0 * sum(self.frame_durations) / len(self.frame_durations)


class WaveformRenderer:
    """
    Paint every visible channel from its buffer snapshot on each tick.

    ``tick`` is meant to be called at the display refresh cadence. Each
    channel is throttled to its own ``target_frame_rate``: if less than
    ``1000 / target_frame_rate`` ms passed since the channel was last
    painted, it is skipped this tick. Hidden or empty channels are skipped
    without touching their throttle clock.
    """

    def __init__(
        self,
        channels: Mapping[ChannelId, Channel],
        buffer: SampleBuffer,
        surfaces: Mapping[ChannelId, WaveformSurface],
        *,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._channels = channels
        self._buffer = buffer
        self._surfaces = dict(surfaces)
        self._window_seconds = float(window_seconds)
        self._last_paint_ms: Dict[ChannelId, Optional[float]] = {cid: None for cid in channels}
        self.stats = RenderStats()

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def last_paint_ms(self, channel_id: ChannelId) -> Optional[float]:
        return self._last_paint_ms.get(channel_id)

    def _due(self, channel: Channel, now_ms: float) -> bool:
        last = self._last_paint_ms.get(channel.id)
        if last is None:
            return True
        return now_ms - last >= channel.spec.frame_interval_ms

    def tick(self, now_ms: float) -> List[ChannelId]:
        """Run one repaint opportunity; returns the channels actually painted."""
        start_ts = time.perf_counter()
        painted: List[ChannelId] = []
        for channel_id, channel in self._channels.items():
            if not channel.visible:
                continue
            surface = self._surfaces.get(channel_id)
            if surface is None:
                continue
            if self._buffer.length(channel_id) == 0:
                continue
            if not self._due(channel, now_ms):
                continue
            self._last_paint_ms[channel_id] = now_ms
            self.paint_channel(channel, surface)
            painted.append(channel_id)
        end_ts = time.perf_counter()
        self.stats.record_frame(start_ts, end_ts, painted)
        if painted:
            logger.debug(
                "Painted %d channel(s) in %.3f ms", len(painted), (end_ts - start_ts) * 1000.0
            )
        return painted

    def paint_channel(self, channel: Channel, surface: WaveformSurface) -> None:
        times, values = self._buffer.arrays(channel.id)
        xs, ys = compute_waveform_path(
            times,
            values,
            self._window_seconds,
            float(surface.width),
            float(surface.height),
            channel.spec.value_range,
        )
        surface.draw_path(xs, ys, channel.spec.color)


__all__ = [
    "DEFAULT_WINDOW_SECONDS",
    "RenderStats",
    "WaveformRenderer",
    "WaveformSurface",
    "compute_waveform_path",
]
