from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from vitalscope.config.channels import ChannelId
from vitalscope.core.envelope import StreamEnvelope
from vitalscope.core.session import MonitorSession
from vitalscope.dataio.export import build_export, default_export_name, write_export

NOW = datetime(2024, 12, 4, 11, 39, 5, tzinfo=timezone.utc)


def _session_with(counts: dict[ChannelId, int]) -> MonitorSession:
    session = MonitorSession()
    for cid, n in counts.items():
        for i in range(n):
            session.handle_envelope(StreamEnvelope(timestamp=i * 0.05, values={cid: float(i)}))
    return session


def test_export_shape() -> None:
    session = _session_with({ChannelId.ECG: 3})
    payload = build_export(session, now=NOW)
    assert payload["timestamp"] == "2024-12-04T11:39:05+00:00"
    assert payload["total_data_points"] == 3
    assert isinstance(payload["session_duration"], int)
    assert set(payload["charts"]) == {"ecg", "spo2", "resp", "pleth"}


def test_export_keeps_last_hundred_points() -> None:
    session = _session_with({ChannelId.ECG: 250, ChannelId.RESP: 40})
    charts = build_export(session, now=NOW)["charts"]

    ecg = charts["ecg"]
    assert len(ecg["timestamps"]) == len(ecg["values"]) == 100
    assert ecg["values"][0] == 150.0
    assert ecg["values"][-1] == 249.0

    resp = charts["resp"]
    assert len(resp["timestamps"]) == len(resp["values"]) == 40
    assert charts["pleth"] == {"timestamps": [], "values": []}


def test_export_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        build_export(MonitorSession(), max_points=0)


def test_write_export_creates_directories(tmp_path) -> None:
    session = _session_with({ChannelId.SPO2: 5})
    target = tmp_path / "exports" / default_export_name(NOW)
    write_export(target, build_export(session, now=NOW))

    data = json.loads(target.read_text(encoding="utf-8"))
    assert data["charts"]["spo2"]["values"] == [0.0, 1.0, 2.0, 3.0, 4.0]
    assert target.name == f"vitalscope-export-{int(NOW.timestamp() * 1000)}.json"
