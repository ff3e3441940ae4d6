from __future__ import annotations

import logging

import numpy as np
import pytest

from vitalscope.config.channels import ChannelId, ValueRange, create_channels, build_channel_specs
from vitalscope.core.sample_buffer import SampleBuffer
from vitalscope.gui.renderer import WaveformRenderer, compute_waveform_path


class FakeSurface:
    def __init__(self, width: float = 600.0, height: float = 120.0) -> None:
        self.width = width
        self.height = height
        self.paths: list[tuple[np.ndarray, np.ndarray, str]] = []

    def draw_path(self, xs, ys, color) -> None:
        self.paths.append((xs, ys, color))


def _setup(window_seconds: float = 6.0):
    channels = create_channels(build_channel_specs())
    buf = SampleBuffer(channels.keys(), capacity=600)
    surfaces = {cid: FakeSurface() for cid in channels}
    renderer = WaveformRenderer(channels, buf, surfaces, window_seconds=window_seconds)
    return channels, buf, surfaces, renderer


def test_window_keeps_trailing_samples_only() -> None:
    times = np.arange(8, dtype=float)
    values = np.full(8, 0.6)
    xs, ys = compute_waveform_path(times, values, 6.0, 600.0, 120.0, ValueRange(0.0, 1.2))
    # t=0 falls outside [1, 7]
    assert xs.tolist() == pytest.approx([0.0, 100.0, 200.0, 300.0, 400.0, 500.0, 600.0])
    assert ys.tolist() == pytest.approx([60.0] * 7)


def test_value_mapping_is_inverted_and_unclamped() -> None:
    times = np.array([0.0, 1.0, 2.0])
    values = np.array([0.0, 1.2, 2.4])
    _, ys = compute_waveform_path(times, values, 6.0, 600.0, 120.0, ValueRange(0.0, 1.2))
    assert ys.tolist() == pytest.approx([120.0, 0.0, -120.0])


def test_empty_or_mismatched_input_gives_empty_path() -> None:
    xs, ys = compute_waveform_path(np.array([]), np.array([]), 6.0, 1.0, 1.0, ValueRange(0, 1))
    assert xs.size == ys.size == 0
    xs, _ = compute_waveform_path(np.array([0.0, 1.0]), np.array([1.0]), 6.0, 1.0, 1.0, ValueRange(0, 1))
    assert xs.size == 0


def test_paint_uses_channel_color() -> None:
    channels, buf, surfaces, renderer = _setup()
    buf.append(ChannelId.ECG, 0.0, 0.5)
    assert renderer.tick(0.0) == [ChannelId.ECG]
    _, _, color = surfaces[ChannelId.ECG].paths[-1]
    assert color == channels[ChannelId.ECG].spec.color


def test_throttle_per_channel_frame_rate() -> None:
    _, buf, surfaces, renderer = _setup()
    buf.append(ChannelId.ECG, 0.0, 0.5)

    assert renderer.tick(0.0) == [ChannelId.ECG]
    # 30 fps -> one paint per 33.3 ms at most
    assert renderer.tick(10.0) == []
    assert renderer.tick(33.0) == []
    assert renderer.tick(34.0) == [ChannelId.ECG]
    assert len(surfaces[ChannelId.ECG].paths) == 2
    assert renderer.last_paint_ms(ChannelId.ECG) == 34.0


def test_hidden_channel_skipped_without_touching_clock() -> None:
    channels, buf, surfaces, renderer = _setup()
    buf.append(ChannelId.PLETH, 0.0, 0.5)
    channels[ChannelId.PLETH].visible = False

    assert renderer.tick(0.0) == []
    assert renderer.last_paint_ms(ChannelId.PLETH) is None
    assert surfaces[ChannelId.PLETH].paths == []

    channels[ChannelId.PLETH].visible = True
    assert renderer.tick(5.0) == [ChannelId.PLETH]


def test_empty_channel_not_painted() -> None:
    _, _, surfaces, renderer = _setup()
    assert renderer.tick(0.0) == []
    assert all(not s.paths for s in surfaces.values())
    assert renderer.last_paint_ms(ChannelId.ECG) is None


def test_frame_stats_track_painted_frames() -> None:
    _, buf, _, renderer = _setup()
    buf.append(ChannelId.RESP, 0.0, 0.5)
    renderer.tick(0.0)
    renderer.tick(100.0)
    assert renderer.stats.paints[ChannelId.RESP] == 2
    assert len(renderer.stats.frame_times) == 2


def test_painted_frames_are_logged_at_debug(caplog) -> None:
    _, buf, _, renderer = _setup()
    caplog.set_level(logging.DEBUG, logger="vitalscope.gui.renderer")
    renderer.tick(0.0)
    buf.append(ChannelId.RESP, 0.0, 0.5)
    renderer.tick(10.0)

    messages = [r.getMessage() for r in caplog.records if r.name == "vitalscope.gui.renderer"]
    assert len(messages) == 1
    assert messages[0].startswith("Painted 1 channel(s) in ")


def test_window_must_be_positive() -> None:
    channels = create_channels(build_channel_specs())
    with pytest.raises(ValueError):
        WaveformRenderer(channels, SampleBuffer(), {}, window_seconds=0)
