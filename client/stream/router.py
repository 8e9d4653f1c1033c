"""
Event routing by type tag.

Decoded StreamEvents are dispatched to handlers registered for their tag.
Unknown tags go to the fallback handler when one is set.
"""

from collections.abc import Callable

from core.models import StreamEvent
from logger_config import get_logger

logger = get_logger("router")


class EventRouter:
    """Routes stream events to handlers based on their type tag."""

    def __init__(self):
        self._routes: dict[str, Callable[[StreamEvent], None]] = {}
        self._fallback: Callable[[StreamEvent], None] | None = None

    def route(self, tag: str):
        """Decorator to register a handler for a tag."""

        def decorator(handler: Callable[[StreamEvent], None]):
            self._routes[tag] = handler
            logger.debug(f"Registered event handler: {tag}")
            return handler

        return decorator

    def add_route(self, tag: str, handler: Callable[[StreamEvent], None]):
        """Programmatically add a route."""
        self._routes[tag] = handler

    def fallback(self, handler: Callable[[StreamEvent], None]):
        """Decorator for the handler that receives unrouted events."""
        self._fallback = handler
        return handler

    def dispatch(self, event: StreamEvent) -> bool:
        """Deliver an event. Returns False if nothing handled it."""
        handler = self._routes.get(event.tag, self._fallback)
        if handler is None:
            logger.debug(f"No handler for event: {event.tag}")
            return False
        handler(event)
        return True

    # A router can be passed straight to StreamClient.connect() as the consumer
    __call__ = dispatch
