"""Connection state machine for the live vitals stream."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from ..core.envelope import EnvelopeDecodeError, StreamEnvelope, decode_envelope
from .transport import StreamTransport, TransportFactory

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY_MS = 2000

Scheduler = Callable[[int, Callable[[], None]], None]


class ConnectionState(str, Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"


class EnvelopeConsumer(Protocol):
    def handle_envelope(self, envelope: StreamEnvelope) -> Any:  # pragma: no cover - protocol
        ...


def qt_schedule(delay_ms: int, callback: Callable[[], None]) -> None:
    QTimer.singleShot(int(delay_ms), callback)


class StreamClient(QObject):
    """
    Keep one logical connection to the vitals stream alive.

    ``Disconnected --connect_stream()--> Connecting --open--> Connected``;
    any transport error or close drops back to ``Disconnected`` and schedules
    exactly one new attempt after ``reconnect_delay_ms``. The delay never
    grows and there is no retry limit: attempts continue until
    :meth:`shutdown` is called.

    A message that fails to decode is logged and dropped without touching the
    connection state.
    """

    state_changed = Signal(object)  # ConnectionState
    envelope_processed = Signal(object)  # whatever the consumer returned
    decode_failed = Signal(str)

    def __init__(
        self,
        transport_factory: TransportFactory,
        consumer: EnvelopeConsumer,
        *,
        reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS,
        schedule: Scheduler | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        if reconnect_delay_ms <= 0:
            raise ValueError("reconnect_delay_ms must be positive")
        self._transport_factory = transport_factory
        self._consumer = consumer
        self._reconnect_delay_ms = int(reconnect_delay_ms)
        self._schedule = schedule or qt_schedule
        self._state = ConnectionState.DISCONNECTED
        self._transport: Optional[StreamTransport] = None
        self._generation = 0
        self._retry_pending = False
        self._shut_down = False

        self.connection_attempts = 0
        self.messages_received = 0
        self.decode_failures = 0

    # ------------------------------------------------------------------ state
    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_delay_ms(self) -> int:
        return self._reconnect_delay_ms

    @property
    def retry_pending(self) -> bool:
        return self._retry_pending

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        logger.info("Stream %s -> %s", self._state.value, state.value)
        self._state = state
        self.state_changed.emit(state)

    # --------------------------------------------------------------- commands
    @Slot()
    def connect_stream(self) -> None:
        """Start a connection attempt if currently disconnected."""
        if self._shut_down or self._state != ConnectionState.DISCONNECTED:
            return
        self._generation += 1
        generation = self._generation
        self.connection_attempts += 1
        self._set_state(ConnectionState.CONNECTING)

        try:
            transport = self._transport_factory()
            self._transport = transport
            transport.open(
                lambda: self._on_open(generation),
                lambda payload: self._on_message(generation, payload),
                lambda reason: self._on_error(generation, reason),
            )
        except Exception as exc:
            logger.exception("Failed to open stream transport")
            self._on_error(generation, f"failed to open transport: {exc}")

    @Slot()
    def shutdown(self) -> None:
        """Close the connection and suppress all further reconnect attempts."""
        if self._shut_down:
            return
        self._shut_down = True
        self._generation += 1
        self._close_transport()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Stream client shut down")

    # -------------------------------------------------------------- callbacks
    def _is_current(self, generation: int) -> bool:
        return not self._shut_down and generation == self._generation

    def _on_open(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._set_state(ConnectionState.CONNECTED)

    def _on_message(self, generation: int, payload: str) -> None:
        if not self._is_current(generation):
            return
        self.messages_received += 1
        try:
            envelope = decode_envelope(payload)
        except EnvelopeDecodeError as exc:
            self.decode_failures += 1
            logger.warning("Dropping malformed stream message: %s", exc)
            self.decode_failed.emit(str(exc))
            return

        try:
            result = self._consumer.handle_envelope(envelope)
        except Exception:
            logger.exception("Failed to handle envelope at t=%.3f", envelope.timestamp)
            return
        self.envelope_processed.emit(result)

    def _on_error(self, generation: int, reason: str) -> None:
        if not self._is_current(generation):
            return
        # Invalidate the failed transport before anything else can call back.
        self._generation += 1
        logger.warning("Stream connection lost: %s", reason)
        self._close_transport()
        self._set_state(ConnectionState.DISCONNECTED)
        self._schedule_retry()

    # ---------------------------------------------------------------- helpers
    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        try:
            transport.close()
        except Exception:
            logger.exception("Error while closing stream transport")

    def _schedule_retry(self) -> None:
        if self._shut_down or self._retry_pending:
            return
        self._retry_pending = True
        logger.info("Reconnecting in %d ms", self._reconnect_delay_ms)
        self._schedule(self._reconnect_delay_ms, self._retry)

    def _retry(self) -> None:
        self._retry_pending = False
        if self._shut_down:
            return
        logger.info("Attempting to reconnect")
        self.connect_stream()


__all__ = [
    "ConnectionState",
    "DEFAULT_RECONNECT_DELAY_MS",
    "EnvelopeConsumer",
    "Scheduler",
    "StreamClient",
    "qt_schedule",
]
