from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from ..config.channels import ChannelId

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 600
# Trim once the series grows past 110% of capacity, dropping 20% in one go.
TRIM_HIGH_WATER = 1.1
TRIM_FRACTION = 0.2


@dataclass(frozen=True, slots=True)
class Sample:
    timestamp_s: float
    value: float


def _empty_arrays() -> tuple[np.ndarray, np.ndarray]:
    return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)


class SampleSeries:
    """
    Append-only time series with batched eviction.

    Unlike :class:`collections.deque` with ``maxlen`` the oldest samples are
    dropped in blocks of ``floor(capacity * 0.2)`` once the length exceeds
    ``capacity * 1.1``, so the length saw-tooths between roughly 90% and 110%
    of ``capacity``.

    Samples are kept in arrival order. A timestamp older than the newest one
    already stored is kept where it arrived (counted in
    :attr:`out_of_order_count`); plots will show a backward jump.
    """

    __slots__ = ("_capacity", "_high_water", "_trim_count", "_times", "_values", "_out_of_order")

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._high_water = self._capacity * TRIM_HIGH_WATER
        # Tiny capacities would otherwise never evict.
        self._trim_count = max(1, math.floor(self._capacity * TRIM_FRACTION))
        self._times: List[float] = []
        self._values: List[float] = []
        self._out_of_order = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def trim_count(self) -> int:
        """Number of samples removed by one eviction."""
        return self._trim_count

    @property
    def out_of_order_count(self) -> int:
        return self._out_of_order

    def append(self, timestamp: float, value: float) -> None:
        """Append a ``(timestamp, value)`` pair, evicting a block if needed."""
        ts = float(timestamp)
        if self._times and ts < self._times[-1]:
            self._out_of_order += 1
            logger.debug(
                "Out-of-order sample: t=%.6f after t=%.6f (kept in arrival order)",
                ts,
                self._times[-1],
            )
        self._times.append(ts)
        self._values.append(float(value))
        if len(self._times) > self._high_water:
            del self._times[: self._trim_count]
            del self._values[: self._trim_count]

    def clear(self) -> None:
        self._times.clear()
        self._values.clear()
        self._out_of_order = 0

    def __len__(self) -> int:
        return len(self._times)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.snapshot())

    def latest(self) -> Sample | None:
        """Return the newest sample, or ``None`` if the series is empty."""
        if not self._times:
            return None
        return Sample(self._times[-1], self._values[-1])

    def snapshot(self) -> Tuple[Sample, ...]:
        """Return an immutable copy of the current contents, oldest first."""
        return tuple(Sample(t, v) for t, v in zip(self._times, self._values))

    def arrays(self) -> tuple[np.ndarray, np.ndarray]:
        """Return copied ``float64`` arrays of timestamps and values."""
        if not self._times:
            return _empty_arrays()
        return (
            np.array(self._times, dtype=np.float64),
            np.array(self._values, dtype=np.float64),
        )

    def tail(self, count: int) -> tuple[np.ndarray, np.ndarray]:
        """Return copies of the newest ``min(count, len)`` samples."""
        if count <= 0 or not self._times:
            return _empty_arrays()
        return (
            np.array(self._times[-count:], dtype=np.float64),
            np.array(self._values[-count:], dtype=np.float64),
        )


class SampleBuffer:
    """
    One :class:`SampleSeries` per channel.

    The buffer is written by the stream client and read by the renderer and
    the vital estimator on the Qt main thread, so plain Python containers are
    sufficient. Readers only ever receive copies.
    """

    def __init__(
        self,
        channel_ids: Iterable[ChannelId] = tuple(ChannelId),
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = int(capacity)
        self._series: Dict[ChannelId, SampleSeries] = {
            ChannelId(channel_id): SampleSeries(self._capacity) for channel_id in channel_ids
        }

    @property
    def capacity(self) -> int:
        return self._capacity

    def channel_ids(self) -> List[ChannelId]:
        return list(self._series.keys())

    def series(self, channel_id: ChannelId) -> SampleSeries:
        try:
            return self._series[ChannelId(channel_id)]
        except (KeyError, ValueError):
            raise KeyError(f"Unknown channel {channel_id!r}") from None

    def append(self, channel_id: ChannelId, timestamp: float, value: float) -> None:
        self.series(channel_id).append(timestamp, value)

    def snapshot(self, channel_id: ChannelId) -> Tuple[Sample, ...]:
        return self.series(channel_id).snapshot()

    def arrays(self, channel_id: ChannelId) -> tuple[np.ndarray, np.ndarray]:
        return self.series(channel_id).arrays()

    def tail(self, channel_id: ChannelId, count: int) -> tuple[np.ndarray, np.ndarray]:
        return self.series(channel_id).tail(count)

    def length(self, channel_id: ChannelId) -> int:
        return len(self.series(channel_id))

    def latest(self, channel_id: ChannelId) -> Sample | None:
        return self.series(channel_id).latest()

    def clear(self) -> None:
        for series in self._series.values():
            series.clear()


__all__ = [
    "DEFAULT_CAPACITY",
    "Sample",
    "SampleBuffer",
    "SampleSeries",
    "TRIM_FRACTION",
    "TRIM_HIGH_WATER",
]
