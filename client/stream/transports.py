"""
Push-stream transports.

A transport opens one connection and yields raw message payloads until the
connection ends. It never reconnects; every way a connection can end
(refused, non-OK handshake, dropped, closed by the server) surfaces as
TransportError so the stream client can back off and retry.

- SSETransport: text/event-stream over HTTP(S) using aiohttp
- WebSocketTransport: text frames over ws(s) using websockets
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import aiohttp
import websockets

from core.errors import TransportError
from logger_config import get_logger

logger = get_logger("transport")

OnOpen = Callable[[], None]


# =============================================================================
# SERVER-SENT EVENTS PARSER
# =============================================================================


@dataclass
class SSEMessage:
    data: str
    event: str = "message"
    id: str | None = None


class SSEParser:
    """
    Incremental text/event-stream parser.

    Feed raw byte chunks as they arrive; complete events are returned once
    their terminating blank line has been seen. Lines may be split across
    chunks.
    """

    def __init__(self):
        self._buffer = b""
        self._data: list[str] = []
        self._event = ""
        self._id: str | None = None
        self.last_event_id: str | None = None

    def feed(self, chunk: bytes) -> list[SSEMessage]:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")

        messages = []
        for raw_line in lines:
            line = raw_line.rstrip(b"\r").decode("utf-8", errors="replace")
            message = self._process_line(line)
            if message is not None:
                messages.append(message)
        return messages

    def _process_line(self, line: str) -> SSEMessage | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None  # comment / keepalive

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._id = value
                self.last_event_id = value
        return None

    def _dispatch(self) -> SSEMessage | None:
        if not self._data:
            self._event = ""
            return None
        message = SSEMessage(data="\n".join(self._data), event=self._event or "message", id=self._id)
        self._data = []
        self._event = ""
        return message


# =============================================================================
# TRANSPORTS
# =============================================================================


class Transport(ABC):
    """One-shot connection yielding raw payloads."""

    name = "transport"

    def __init__(self, connect_timeout_s: float = 5.0, read_timeout_s: float = 30.0):
        self.connect_timeout_s = connect_timeout_s
        self.read_timeout_s = read_timeout_s

    @abstractmethod
    def messages(self, url: str, on_open: OnOpen | None = None) -> AsyncIterator[str | bytes]:
        """Async generator of payloads. Raises TransportError when the connection ends."""


class SSETransport(Transport):
    """Server-sent events over aiohttp."""

    name = "sse"

    def __init__(self, connect_timeout_s: float = 5.0, read_timeout_s: float = 30.0):
        super().__init__(connect_timeout_s, read_timeout_s)
        self.last_event_id: str | None = None

    async def messages(self, url: str, on_open: OnOpen | None = None) -> AsyncIterator[str]:
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=self.connect_timeout_s,
            sock_read=self.read_timeout_s or None,
        )
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        if self.last_event_id:
            headers["Last-Event-ID"] = self.last_event_id

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    if response.status != 200:
                        raise TransportError(f"SSE handshake failed: HTTP {response.status}")

                    if on_open is not None:
                        on_open()
                    logger.debug(f"SSE stream open: {url}")

                    parser = SSEParser()
                    async for chunk in response.content.iter_any():
                        for message in parser.feed(chunk):
                            yield message.data
                        if parser.last_event_id:
                            self.last_event_id = parser.last_event_id
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"SSE connection error: {str(e) or type(e).__name__}") from e

        raise TransportError("SSE stream closed by server")


class WebSocketTransport(Transport):
    """JSON text frames over a WebSocket."""

    name = "websocket"

    async def messages(self, url: str, on_open: OnOpen | None = None) -> AsyncIterator[str | bytes]:
        try:
            async with websockets.connect(
                url,
                open_timeout=self.connect_timeout_s,
                close_timeout=2,
            ) as ws:
                if on_open is not None:
                    on_open()
                logger.debug(f"WebSocket open: {url}")

                while True:
                    if self.read_timeout_s:
                        message = await asyncio.wait_for(ws.recv(), timeout=self.read_timeout_s)
                    else:
                        message = await ws.recv()
                    yield message
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportError(f"WebSocket closed: {e}") from e
        except (websockets.exceptions.WebSocketException, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"WebSocket connection error: {str(e) or type(e).__name__}") from e


def transport_for(url_scheme: str, connect_timeout_s: float = 5.0, read_timeout_s: float = 30.0) -> Transport:
    """Pick the transport for an already-validated endpoint scheme."""
    if url_scheme in ("ws", "wss"):
        return WebSocketTransport(connect_timeout_s, read_timeout_s)
    return SSETransport(connect_timeout_s, read_timeout_s)
