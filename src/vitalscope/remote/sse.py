"""Incremental parser for ``text/event-stream`` (Server-Sent Events) framing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

_BOM = "\ufeff"


@dataclass(frozen=True)
class SseEvent:
    data: str
    event: str = "message"
    id: Optional[str] = None


class SseParser:
    """
    Turn arbitrary byte chunks into complete :class:`SseEvent` objects.

    Lines may end in LF, CRLF or CR and may be split across chunks; incomplete
    lines are held back until the rest arrives. An event is dispatched on a
    blank line, and only if at least one ``data`` field was seen.
    """

    def __init__(self) -> None:
        self._pending = b""
        self._pending_cr = False
        self._first_line = True
        self._data: List[str] = []
        self._event = ""
        self._last_event_id: Optional[str] = None
        self.retry_ms: Optional[int] = None

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_event_id

    def reset(self) -> None:
        """Drop partial input, e.g. after the underlying connection was replaced."""
        self._pending = b""
        self._pending_cr = False
        self._first_line = True
        self._data = []
        self._event = ""

    def feed(self, chunk: bytes) -> List[SseEvent]:
        """Consume ``chunk`` and return the events it completed."""
        events: List[SseEvent] = []
        if not chunk:
            return events
        buf = self._pending + bytes(chunk)
        if self._pending_cr and buf.startswith(b"\n"):
            # Second half of a CRLF split across chunks.
            buf = buf[1:]
        self._pending_cr = False

        start = 0
        length = len(buf)
        idx = 0
        while idx < length:
            byte = buf[idx]
            if byte == 0x0A or byte == 0x0D:
                self._process_line(buf[start:idx], events)
                if byte == 0x0D:
                    if idx + 1 < length and buf[idx + 1] == 0x0A:
                        idx += 1
                    elif idx + 1 == length:
                        self._pending_cr = True
                start = idx + 1
            idx += 1
        self._pending = buf[start:]
        return events

    def _process_line(self, raw: bytes, events: List[SseEvent]) -> None:
        line = raw.decode("utf-8", errors="replace")
        if self._first_line:
            self._first_line = False
            if line.startswith(_BOM):
                line = line[len(_BOM):]

        if not line:
            self._dispatch(events)
            return
        if line.startswith(":"):
            return

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "data":
            self._data.append(value)
        elif name == "event":
            self._event = value
        elif name == "id":
            if "\x00" not in value:
                self._last_event_id = value
        elif name == "retry":
            if value.isdigit():
                self.retry_ms = int(value)
        else:
            logger.debug("Ignoring unknown SSE field %r", name)

    def _dispatch(self, events: List[SseEvent]) -> None:
        if not self._data:
            self._event = ""
            return
        events.append(
            SseEvent(
                data="\n".join(self._data),
                event=self._event or "message",
                id=self._last_event_id,
            )
        )
        self._data = []
        self._event = ""


__all__ = ["SseEvent", "SseParser"]
