"""Push-stream consumer: transports, decoding, routing and reconnect."""

from .client import StreamClient, Subscription, validate_endpoint
from .codec import decode_event, decode_spectrum, decode_status
from .router import EventRouter
from .transports import SSEParser, SSETransport, WebSocketTransport

__all__ = [
    "StreamClient",
    "Subscription",
    "validate_endpoint",
    "decode_event",
    "decode_spectrum",
    "decode_status",
    "EventRouter",
    "SSEParser",
    "SSETransport",
    "WebSocketTransport",
]
