from __future__ import annotations

import numpy as np
import pytest

from vitalscope.analysis.vitals import (
    HEART_RATE,
    RESPIRATORY_RATE,
    THRESHOLDS,
    PeakRateConfig,
    VitalEstimator,
    VitalStatus,
    build_vitals_report,
    classify,
    count_peaks,
    estimate_rate,
)
from vitalscope.config.channels import ChannelId
from vitalscope.core.sample_buffer import SampleBuffer


def _spikes(length: int, positions: list[int], height: float = 1.0) -> np.ndarray:
    y = np.zeros(length)
    y[positions] = height
    return y


def test_default_windows() -> None:
    assert HEART_RATE.window_samples == 40
    assert HEART_RATE.per_minute_scale == pytest.approx(30.0)
    assert RESPIRATORY_RATE.window_samples == 200
    assert RESPIRATORY_RATE.per_minute_scale == pytest.approx(6.0)


def test_monotonic_signal_has_no_peaks() -> None:
    values = np.linspace(0.0, 1.0, 40)
    assert count_peaks(values, 0.5) == 0
    assert estimate_rate(values, HEART_RATE) == 0


def test_short_history_gives_zero() -> None:
    values = _spikes(39, [10, 30])
    assert estimate_rate(values, HEART_RATE) == 0


def test_heart_rate_from_two_peaks() -> None:
    values = _spikes(40, [10, 30])
    assert estimate_rate(values, HEART_RATE) == 60


def test_only_trailing_window_counts() -> None:
    values = np.concatenate([_spikes(40, [5, 15, 25, 35]), _spikes(40, [20])])
    assert estimate_rate(values, HEART_RATE) == 30


def test_respiratory_rate_from_three_peaks() -> None:
    values = _spikes(200, [30, 100, 170], height=0.5)
    assert estimate_rate(values, RESPIRATORY_RATE) == 18


def test_peaks_below_threshold_ignored() -> None:
    assert count_peaks(_spikes(10, [3, 6], height=0.4), 0.5) == 0
    assert count_peaks(_spikes(10, [3, 6], height=0.5), 0.5) == 0


def test_plateaus_and_edges_are_not_peaks() -> None:
    assert count_peaks([0.0, 1.0, 1.0, 0.0], 0.5) == 0
    assert count_peaks([1.0, 0.0, 0.0, 1.0], 0.5) == 0
    assert count_peaks([1.0, 0.0], 0.5) == 0


def test_from_window_validates() -> None:
    cfg = PeakRateConfig.from_window(2.0, 50.0, threshold=0.4)
    assert cfg.window_samples == 100
    with pytest.raises(ValueError):
        PeakRateConfig.from_window(0.0, 20.0, threshold=0.5)


def test_estimator_reads_buffer() -> None:
    buf = SampleBuffer(capacity=600)
    for i, value in enumerate(_spikes(40, [10, 30])):
        buf.append(ChannelId.ECG, i * 0.05, float(value))
    estimator = VitalEstimator(buf)
    assert estimator.heart_rate() == 60
    assert estimator.respiratory_rate() == 0


@pytest.mark.parametrize(
    "value, expected",
    [
        (72.0, VitalStatus.NORMAL),
        (60.0, VitalStatus.NORMAL),
        (110.0, VitalStatus.WARNING),
        (55.0, VitalStatus.WARNING),
        (160.0, VitalStatus.CRITICAL),
        (39.0, VitalStatus.CRITICAL),
        (None, VitalStatus.NO_SENSOR),
    ],
)
def test_classify_heart_rate(value, expected) -> None:
    assert classify(value, THRESHOLDS["hr"]) is expected


def _report(**overrides):
    kwargs = dict(
        timestamp=1.0,
        heart_rate=72,
        respiratory_rate=16,
        spo2=97.6,
        bp_systolic=121.0,
        bp_diastolic=79.0,
        temp_core=37.0,
        temp_skin=36.6,
        nibp_attached=True,
        temp_attached=True,
    )
    kwargs.update(overrides)
    return build_vitals_report(**kwargs)


def test_report_normal_readings() -> None:
    report = _report()
    assert report.heart_rate.value == 72.0
    assert report.heart_rate.status is VitalStatus.NORMAL
    assert report.spo2.value == 98.0
    assert report.respiratory_rate.status is VitalStatus.NORMAL
    assert report.blood_pressure is not None
    assert report.blood_pressure.systolic == 121.0
    assert report.blood_pressure_status is VitalStatus.NORMAL
    assert report.temp_core.status is VitalStatus.NORMAL


def test_report_zero_rate_means_no_estimate() -> None:
    report = _report(heart_rate=0, respiratory_rate=0)
    assert report.heart_rate.value is None
    assert not report.heart_rate.available
    assert report.heart_rate.status is VitalStatus.NO_SENSOR
    assert report.respiratory_rate.status is VitalStatus.NO_SENSOR


def test_report_detached_sensors() -> None:
    report = _report(spo2=None, nibp_attached=False, temp_attached=False)
    assert report.spo2.status is VitalStatus.NO_SENSOR
    assert report.blood_pressure is None
    assert report.blood_pressure_status is VitalStatus.NO_SENSOR
    assert report.temp_core.value is None
    assert report.temp_skin.status is VitalStatus.NO_SENSOR
