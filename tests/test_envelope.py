from __future__ import annotations

import json

import pytest

from vitalscope.config.channels import ChannelId
from vitalscope.core.envelope import EnvelopeDecodeError, decode_envelope, envelope_from_record


def test_decode_full_record() -> None:
    payload = json.dumps(
        {
            "timestamp": 12.35,
            "ecg": 0.61,
            "spo2": 97.8,
            "resp": 0.12,
            "pleth": 0.74,
            "bp_systolic": 121.0,
            "bp_diastolic": 80.5,
            "temp_cavity": 37.2,
            "temp_skin": 36.8,
            "sensors": {"ecg": True, "spo2": False, "resp": True, "nibp": True, "temp": True},
        }
    )
    env = decode_envelope(payload)
    assert env.timestamp == 12.35
    assert env.values == {
        ChannelId.ECG: 0.61,
        ChannelId.SPO2: 97.8,
        ChannelId.RESP: 0.12,
        ChannelId.PLETH: 0.74,
    }
    assert env.vitals.bp_systolic == 121.0
    assert env.vitals.bp_diastolic == 80.5
    assert env.vitals.temp_core == 37.2
    assert env.vitals.temp_skin == 36.8
    assert env.sensors["spo2"] is False


def test_absent_fields_are_not_zero() -> None:
    env = decode_envelope('{"timestamp": 1, "ecg": 0.5}')
    assert env.value(ChannelId.ECG) == 0.5
    assert env.value(ChannelId.SPO2) is None
    assert env.vitals.bp_systolic is None
    assert env.sensors == {}


def test_bytes_payload() -> None:
    env = decode_envelope(b'{"timestamp": 2.5, "resp": 0.3}')
    assert env.timestamp == 2.5
    assert env.value(ChannelId.RESP) == 0.3


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[1, 2, 3]",
        '"text"',
        '{"ecg": 0.5}',
        '{"timestamp": "soon"}',
        '{"timestamp": true}',
        b"\xff\xfe",
    ],
)
def test_malformed_payloads_raise(payload) -> None:
    with pytest.raises(EnvelopeDecodeError):
        decode_envelope(payload)


def test_bad_fields_are_dropped() -> None:
    env = envelope_from_record(
        {
            "timestamp": 3.0,
            "ecg": "abc",
            "spo2": True,
            "resp": float("nan"),
            "pleth": "0.9",
            "temp_skin": None,
            "sensors": {"ecg": "yes", "spo2": True},
        }
    )
    assert env.values == {ChannelId.PLETH: 0.9}
    assert env.vitals.temp_skin is None
    assert env.sensors == {"spo2": True}


def test_non_object_sensors_ignored() -> None:
    env = envelope_from_record({"timestamp": 0.0, "sensors": [True, False]})
    assert env.sensors == {}


def test_oversized_integer_field_is_dropped() -> None:
    env = decode_envelope('{"timestamp": 1.0, "ecg": 1' + "0" * 400 + ', "resp": 0.4}')
    assert env.value(ChannelId.ECG) is None
    assert env.value(ChannelId.RESP) == 0.4


@pytest.mark.parametrize(
    "payload",
    [
        '{"timestamp": 1' + "0" * 400 + "}",
        '{"timestamp": 1' + "0" * 5000 + "}",
    ],
)
def test_oversized_timestamp_is_decode_error(payload) -> None:
    with pytest.raises(EnvelopeDecodeError):
        decode_envelope(payload)
