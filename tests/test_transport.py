from __future__ import annotations

from PySide6.QtNetwork import QNetworkReply

from vitalscope.remote.transport import SseTransport


class FakeSignal:
    def __init__(self) -> None:
        self._slots = []

    def connect(self, slot) -> None:
        self._slots.append(slot)

    def emit(self) -> None:
        for slot in list(self._slots):
            slot()


class FakeBytes:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload

    def data(self) -> bytes:
        return self._payload


class FakeReply:
    def __init__(self) -> None:
        self.metaDataChanged = FakeSignal()
        self.readyRead = FakeSignal()
        self.finished = FakeSignal()
        self.status = None
        self.pending = b""
        self.network_error = QNetworkReply.NetworkError.NoError
        self.error_text = ""
        self.aborted = False
        self.deleted = False

    def attribute(self, _attr):
        return self.status

    def readAll(self) -> FakeBytes:
        chunk, self.pending = self.pending, b""
        return FakeBytes(chunk)

    def error(self):
        return self.network_error

    def errorString(self) -> str:
        return self.error_text

    def abort(self) -> None:
        self.aborted = True
        # QNetworkReply emits finished synchronously from abort().
        self.finished.emit()

    def deleteLater(self) -> None:
        self.deleted = True

    def respond(self, status: int) -> None:
        self.status = status
        self.metaDataChanged.emit()

    def deliver(self, chunk: bytes) -> None:
        self.pending += chunk
        self.readyRead.emit()


class FakeManager:
    def __init__(self) -> None:
        self.requests = []
        self.replies: list[FakeReply] = []

    def get(self, request) -> FakeReply:
        self.requests.append(request)
        reply = FakeReply()
        self.replies.append(reply)
        return reply


class Recorder:
    def __init__(self) -> None:
        self.opened = 0
        self.messages: list[str] = []
        self.errors: list[str] = []

    def on_open(self) -> None:
        self.opened += 1

    def on_message(self, data: str) -> None:
        self.messages.append(data)

    def on_error(self, reason: str) -> None:
        self.errors.append(reason)


def _open(url: str = "http://monitor.local/stream"):
    manager = FakeManager()
    transport = SseTransport(url, manager=manager)
    recorder = Recorder()
    transport.open(recorder.on_open, recorder.on_message, recorder.on_error)
    return transport, manager.replies[0], recorder, manager


def test_request_asks_for_event_stream(qapp) -> None:
    _, _, _, manager = _open()
    request = manager.requests[0]
    assert request.url().toString() == "http://monitor.local/stream"
    assert bytes(request.rawHeader(b"Accept")) == b"text/event-stream"


def test_status_200_opens_and_forwards_messages(qapp) -> None:
    _, reply, recorder, _ = _open()
    reply.respond(200)
    reply.deliver(b'data: {"timestamp": 1}\n\ndata: {"timest')
    reply.deliver(b'amp": 2}\n\n')

    assert recorder.opened == 1
    assert recorder.messages == ['{"timestamp": 1}', '{"timestamp": 2}']
    assert recorder.errors == []


def test_non_message_events_are_ignored(qapp) -> None:
    _, reply, recorder, _ = _open()
    reply.respond(200)
    reply.deliver(b"event: ping\ndata: keepalive\n\n: comment\n\ndata: ok\n\n")
    assert recorder.messages == ["ok"]


def test_non_200_status_reports_one_error(qapp) -> None:
    _, reply, recorder, _ = _open()
    reply.respond(503)

    assert recorder.opened == 0
    assert recorder.errors == ["HTTP 503 from http://monitor.local/stream"]
    assert reply.aborted and reply.deleted

    reply.finished.emit()
    reply.deliver(b"data: late\n\n")
    assert len(recorder.errors) == 1
    assert recorder.messages == []


def test_data_before_headers_checks_status_first(qapp) -> None:
    _, reply, recorder, _ = _open()
    reply.status = 404
    reply.deliver(b"data: nope\n\n")
    assert recorder.messages == []
    assert recorder.errors == ["HTTP 404 from http://monitor.local/stream"]


def test_network_error_reported_once(qapp) -> None:
    _, reply, recorder, _ = _open()
    reply.respond(200)
    reply.network_error = QNetworkReply.NetworkError.RemoteHostClosedError
    reply.error_text = "Connection closed"
    reply.finished.emit()
    reply.finished.emit()
    assert recorder.errors == ["Connection closed"]


def test_clean_end_of_stream_is_an_error(qapp) -> None:
    _, reply, recorder, _ = _open()
    reply.respond(200)
    reply.finished.emit()
    assert recorder.errors == ["stream closed by server"]


def test_close_is_silent(qapp) -> None:
    transport, reply, recorder, _ = _open()
    reply.respond(200)
    transport.close()

    assert reply.aborted and reply.deleted
    assert recorder.errors == []

    reply.deliver(b"data: after close\n\n")
    transport.close()
    assert recorder.messages == []
    assert recorder.errors == []
