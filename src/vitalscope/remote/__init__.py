"""Remote stream access: SSE framing, transports and the reconnecting client."""

from .sse import SseEvent, SseParser
from .stream_client import ConnectionState, StreamClient
from .transport import SseTransport, StreamTransport, sse_transport_factory

__all__ = [
    "ConnectionState",
    "SseEvent",
    "SseParser",
    "SseTransport",
    "StreamClient",
    "StreamTransport",
    "sse_transport_factory",
]
