"""Transports that deliver raw stream messages to :class:`StreamClient`."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from PySide6.QtCore import QObject, QUrl
from PySide6.QtNetwork import QNetworkAccessManager, QNetworkReply, QNetworkRequest

from .sse import SseParser

logger = logging.getLogger(__name__)

OpenCallback = Callable[[], None]
MessageCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]


class StreamTransport(Protocol):
    """
    One connection attempt to a push data source.

    ``open`` starts the attempt; the transport then calls ``on_open`` once
    when the stream is established, ``on_message`` for every payload and
    ``on_error`` at most once when the connection fails or ends. ``close``
    must be safe to call at any time and must not trigger ``on_error``.
    """

    def open(
        self,
        on_open: OpenCallback,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> None:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...


TransportFactory = Callable[[], StreamTransport]


class SseTransport(QObject):
    """Server-Sent Events over HTTP using :class:`QNetworkAccessManager`."""

    def __init__(
        self,
        url: str,
        *,
        manager: QNetworkAccessManager | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._url = url
        self._manager = manager or QNetworkAccessManager(self)
        self._reply: Optional[QNetworkReply] = None
        self._parser = SseParser()
        self._opened = False
        self._done = False
        self._on_open: OpenCallback | None = None
        self._on_message: MessageCallback | None = None
        self._on_error: ErrorCallback | None = None

    @property
    def url(self) -> str:
        return self._url

    def open(
        self,
        on_open: OpenCallback,
        on_message: MessageCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._on_open = on_open
        self._on_message = on_message
        self._on_error = on_error

        request = QNetworkRequest(QUrl(self._url))
        request.setRawHeader(b"Accept", b"text/event-stream")
        request.setRawHeader(b"Cache-Control", b"no-cache")
        request.setAttribute(
            QNetworkRequest.Attribute.CacheLoadControlAttribute,
            QNetworkRequest.CacheLoadControl.AlwaysNetwork,
        )
        logger.info("Opening event stream %s", self._url)
        reply = self._manager.get(request)
        reply.metaDataChanged.connect(self._on_meta_data_changed)
        reply.readyRead.connect(self._on_ready_read)
        reply.finished.connect(self._on_finished)
        self._reply = reply

    def close(self) -> None:
        if self._done:
            return
        self._done = True
        reply, self._reply = self._reply, None
        if reply is not None:
            # abort() emits finished synchronously; _done keeps it silent.
            reply.abort()
            reply.deleteLater()
        self._parser.reset()

    def _fail(self, reason: str) -> None:
        if self._done:
            return
        self._done = True
        reply, self._reply = self._reply, None
        if reply is not None:
            reply.abort()
            reply.deleteLater()
        if self._on_error is not None:
            self._on_error(reason)

    def _on_meta_data_changed(self) -> None:
        if self._done or self._opened or self._reply is None:
            return
        status = self._reply.attribute(QNetworkRequest.Attribute.HttpStatusCodeAttribute)
        if status is None:
            return
        if int(status) != 200:
            self._fail(f"HTTP {int(status)} from {self._url}")
            return
        self._opened = True
        if self._on_open is not None:
            self._on_open()

    def _on_ready_read(self) -> None:
        if self._done or self._reply is None:
            return
        if not self._opened:
            self._on_meta_data_changed()
            if self._done:
                return
        chunk = bytes(self._reply.readAll().data())
        for event in self._parser.feed(chunk):
            if self._done:
                break
            if event.event != "message":
                logger.debug("Ignoring SSE event type %r", event.event)
                continue
            if self._on_message is not None:
                self._on_message(event.data)

    def _on_finished(self) -> None:
        if self._done:
            return
        reply = self._reply
        if reply is not None and reply.error() != QNetworkReply.NetworkError.NoError:
            self._fail(reply.errorString())
        else:
            self._fail("stream closed by server")


def sse_transport_factory(url: str, *, parent: QObject | None = None) -> TransportFactory:
    """
    Return a factory creating a fresh :class:`SseTransport` per attempt.

    All attempts share one :class:`QNetworkAccessManager`; the transports
    themselves are unparented so they are released with the client's last
    reference to them.
    """
    manager = QNetworkAccessManager(parent)

    def _factory() -> SseTransport:
        return SseTransport(url, manager=manager)

    return _factory


__all__ = [
    "ErrorCallback",
    "MessageCallback",
    "OpenCallback",
    "SseTransport",
    "StreamTransport",
    "TransportFactory",
    "sse_transport_factory",
]
