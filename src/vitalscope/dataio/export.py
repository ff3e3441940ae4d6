"""JSON export of the most recent waveform data."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ..core.session import MonitorSession

logger = logging.getLogger(__name__)

EXPORT_MAX_POINTS = 100


def build_export(
    session: MonitorSession,
    *,
    now: Optional[datetime] = None,
    max_points: int = EXPORT_MAX_POINTS,
) -> Dict[str, Any]:
    """
    Build the export document for ``session``.

    Each channel carries the newest ``min(max_points, len)`` samples of its
    buffer, oldest first, as parallel ``timestamps``/``values`` lists.
    """
    if max_points <= 0:
        raise ValueError(f"max_points must be positive, got {max_points}")
    stamp = now or datetime.now(timezone.utc)

    charts: Dict[str, Dict[str, list]] = {}
    for channel_id in session.channels:
        times, values = session.buffer.tail(channel_id, max_points)
        charts[channel_id.value] = {
            "timestamps": times.tolist(),
            "values": values.tolist(),
        }

    return {
        "timestamp": stamp.isoformat(),
        "session_duration": session.session_duration_s(),
        "total_data_points": session.total_data_points,
        "charts": charts,
    }


def default_export_name(now: Optional[datetime] = None) -> str:
    """Return e.g. ``vitalscope-export-1733312345678.json``."""
    stamp = now or datetime.now(timezone.utc)
    return f"vitalscope-export-{int(stamp.timestamp() * 1000)}.json"


def write_export(path: Path, payload: Mapping[str, Any]) -> Path:
    """
    Write ``payload`` as indented JSON to ``path``.

    Directories are created as needed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)
        fh.write("\n")
    logger.info("Exported %d channels to %s", len(payload.get("charts", {})), path)
    return path


__all__ = ["EXPORT_MAX_POINTS", "build_export", "default_export_name", "write_export"]
