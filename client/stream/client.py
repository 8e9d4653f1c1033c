"""
Push-stream client with automatic reconnect.

    client = StreamClient(backoff_initial_s=0.5, backoff_max_s=10.0)
    subscription = client.connect("http://localhost:3000/api/sse", router)
    ...
    await subscription.close()

connect() validates the endpoint synchronously (ConfigError) and starts a
background task that delivers decoded StreamEvents to the consumer in
server send order. Malformed messages are dropped with a diagnostic; lost
connections are retried with exponential backoff. Nothing reaches the
consumer after close().

Without a consumer the subscription is an async iterator instead (close()
ends a pending iteration):

    async for event in client.connect(url):
        ...
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from urllib.parse import urlparse

from config.settings import StreamSettings
from core.errors import ConfigError, DecodeError, TransportError, WaterfallError
from core.models import ConnectionState, SpectrumUpdate, StreamEvent
from logger_config import get_logger

from .codec import decode_event
from .transports import Transport, transport_for

logger = get_logger("stream")

SUPPORTED_SCHEMES = ("http", "https", "ws", "wss")

Consumer = Callable[[StreamEvent], None]
StateCallback = Callable[[ConnectionState], None]
ErrorCallback = Callable[[WaterfallError], None]

_END = object()  # iterator-mode end marker


def validate_endpoint(endpoint: str) -> str:
    """Return the endpoint if it is a usable push-stream URL, else raise ConfigError."""
    if not isinstance(endpoint, str) or not endpoint.strip():
        raise ConfigError(f"Invalid stream endpoint: {endpoint!r}")

    try:
        parsed = urlparse(endpoint.strip())
        parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise ConfigError(f"Invalid stream endpoint {endpoint!r}: {e}") from e

    if parsed.scheme not in SUPPORTED_SCHEMES:
        raise ConfigError(
            f"Unsupported stream scheme {parsed.scheme!r} in {endpoint!r} "
            f"(expected one of {', '.join(SUPPORTED_SCHEMES)})"
        )
    if not parsed.hostname:
        raise ConfigError(f"Stream endpoint has no host: {endpoint!r}")

    return endpoint.strip()


class Subscription:
    """One live push-stream connection (and its reconnects) feeding one consumer."""

    def __init__(
        self,
        endpoint: str,
        transport: Transport,
        backoff: Callable[[int], float],
        consumer: Consumer | None = None,
        on_state: StateCallback | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self.endpoint = endpoint
        self.transport = transport
        self._backoff = backoff
        self._consumer = consumer
        self._on_state = on_state
        self._on_error = on_error

        self._closed = False
        self._task: asyncio.Task | None = None
        self._queue: asyncio.Queue | None = None
        self._bin_count: int | None = None

        self.state = ConnectionState.CONNECTING
        self.attempt = 0
        self.reconnects = 0
        self.events_delivered = 0
        self.decode_errors = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _start(self):
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"stream-subscription:{self.endpoint}"
        )

    # -------------------------------------------------------------------------
    # Event sequence
    # -------------------------------------------------------------------------

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        if self._consumer is not None:
            raise RuntimeError("Subscription already delivers to a consumer")
        if self._queue is None:
            self._queue = asyncio.Queue()
            self._start()
            self._task.add_done_callback(lambda _: self._queue.put_nowait(_END))
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[StreamEvent]:
        try:
            while True:
                event = await self._queue.get()
                self._queue.task_done()
                if event is _END or self._closed:
                    return
                yield event
        finally:
            self.cancel()

    async def _events(self) -> AsyncIterator[StreamEvent]:
        while not self._closed:
            self._set_state(ConnectionState.CONNECTING)
            try:
                async with aclosing(self.transport.messages(self.endpoint, self._on_open)) as messages:
                    async for raw in messages:
                        if self._closed:
                            return
                        event = self._decode(raw)
                        if event is not None:
                            yield event
            except TransportError as e:
                logger.warning(f"Stream lost ({self.endpoint}): {e}")
                self._report(e)
            except Exception as e:
                logger.error(f"Unexpected stream failure ({self.endpoint}): {e}")

            if self._closed:
                return

            delay = self._backoff(self.attempt)
            self.attempt += 1
            self.reconnects += 1
            self._set_state(ConnectionState.RECONNECTING)
            logger.info(f"Reconnecting in {delay:.2f}s (attempt {self.attempt})")
            await asyncio.sleep(delay)

    def _on_open(self):
        self.attempt = 0
        self._bin_count = None  # bin count is fixed per connection
        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"Connected to {self.endpoint} via {self.transport.name}")

    def _decode(self, raw: str | bytes) -> StreamEvent | None:
        try:
            event = decode_event(raw)
            if isinstance(event, SpectrumUpdate):
                self._check_bin_count(event.sample.bin_count)
        except DecodeError as e:
            self._drop(e)
            return None
        except Exception as e:
            error = DecodeError(f"undecodable message: {type(e).__name__}: {e}", raw)
            error.__cause__ = e
            self._drop(error)
            return None
        return event

    def _drop(self, error: DecodeError):
        self.decode_errors += 1
        logger.warning(f"Dropped malformed message: {error}")
        self._report(error)

    def _check_bin_count(self, bins: int):
        if self._bin_count is None:
            self._bin_count = bins
        elif bins != self._bin_count:
            raise DecodeError(f"spectrum has {bins} bins, connection established {self._bin_count}")

    # -------------------------------------------------------------------------
    # Consumer delivery
    # -------------------------------------------------------------------------

    async def _run(self):
        async with aclosing(self._events()) as events:
            async for event in events:
                if self._closed:
                    break
                self.events_delivered += 1
                if self._queue is not None:
                    # hand over one event at a time to the iterating caller
                    self._queue.put_nowait(event)
                    await self._queue.join()
                    continue
                try:
                    self._consumer(event)
                except Exception as e:
                    logger.error(f"Consumer failed on {event.tag} event: {e}")

    def _set_state(self, state: ConnectionState):
        if self._closed or state == self.state:
            return
        self.state = state
        if self._on_state is not None:
            self._on_state(state)

    def _report(self, error: WaterfallError):
        if self._on_error is not None and not self._closed:
            self._on_error(error)

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def cancel(self):
        """Stop delivery immediately. Safe from inside the consumer callback."""
        if not self._closed:
            logger.info(f"Closing subscription to {self.endpoint}")
        self._closed = True
        self.state = ConnectionState.CLOSED
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._queue is not None:
            self._queue.put_nowait(_END)

    async def wait_closed(self):
        """Block until the delivery task ends (it only ends through close/cancel)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._closed:
                raise

    async def close(self):
        """Stop delivery and wait until the connection has been released."""
        self.cancel()
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        try:
            await task
        except asyncio.CancelledError:
            pass


class StreamClient:
    """Factory for push-stream subscriptions sharing one backoff policy."""

    def __init__(
        self,
        backoff_initial_s: float = 0.5,
        backoff_max_s: float = 10.0,
        connect_timeout_s: float = 5.0,
        read_timeout_s: float = 30.0,
        on_state: StateCallback | None = None,
        on_error: ErrorCallback | None = None,
    ):
        if backoff_initial_s <= 0 or backoff_max_s < backoff_initial_s:
            raise ConfigError("Backoff must satisfy 0 < initial <= max")
        self.backoff_initial_s = backoff_initial_s
        self.backoff_max_s = backoff_max_s
        self.connect_timeout_s = connect_timeout_s
        self.read_timeout_s = read_timeout_s
        self.on_state = on_state
        self.on_error = on_error

    @classmethod
    def from_settings(cls, settings: StreamSettings, **callbacks) -> "StreamClient":
        return cls(
            backoff_initial_s=settings.backoff_initial_s,
            backoff_max_s=settings.backoff_max_s,
            connect_timeout_s=settings.connect_timeout_s,
            read_timeout_s=settings.read_timeout_s,
            **callbacks,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff: initial * 2^attempt, capped at backoff_max_s."""
        return min(self.backoff_initial_s * (2 ** min(attempt, 32)), self.backoff_max_s)

    def connect(
        self,
        endpoint: str,
        consumer: Consumer | None = None,
        transport: Transport | None = None,
    ) -> Subscription:
        """
        Open a subscription.

        Args:
            endpoint: http(s):// for SSE, ws(s):// for WebSocket
            consumer: called with each StreamEvent; if None, iterate the
                returned subscription instead
            transport: override the scheme-selected transport

        Raises:
            ConfigError: endpoint is malformed or uses an unsupported scheme
        """
        url = validate_endpoint(endpoint)
        if transport is None:
            transport = transport_for(urlparse(url).scheme, self.connect_timeout_s, self.read_timeout_s)

        subscription = Subscription(
            url,
            transport,
            backoff=self.backoff_delay,
            consumer=consumer,
            on_state=self.on_state,
            on_error=self.on_error,
        )
        if consumer is not None:
            subscription._start()
        return subscription
