"""Live device data from the push stream."""

from core.live_state import LiveState
from core.models import SPECTRUM_EVENT, STATUS_EVENT
from logger_config import get_logger
from stream.client import StreamClient, Subscription
from stream.router import EventRouter

from .base import SpectrumSource

logger = get_logger("source.stream")


def build_state_router(state: LiveState) -> EventRouter:
    """Router that writes spectrum and status events into state."""
    router = EventRouter()

    @router.route(SPECTRUM_EVENT)
    def on_spectrum(event):
        state.update_spectrum(event.sample)

    @router.route(STATUS_EVENT)
    def on_status(event):
        state.update_status(event.status)

    @router.fallback
    def on_unrecognized(event):
        logger.debug(f"Ignoring unrecognized event type: {event.tag}")

    return router


class StreamSpectrumSource(SpectrumSource):
    name = "stream"

    def __init__(self, client: StreamClient, endpoint: str):
        self.client = client
        self.endpoint = endpoint
        self.subscription: Subscription | None = None

    def attach(self, state: LiveState) -> Subscription:
        """Open the subscription (raises ConfigError for a bad endpoint)."""
        self.subscription = self.client.connect(self.endpoint, build_state_router(state))
        return self.subscription

    async def run(self, state: LiveState) -> None:
        subscription = self.attach(state)
        try:
            await subscription.wait_closed()
        finally:
            await subscription.close()

    async def close(self) -> None:
        if self.subscription is not None:
            await self.subscription.close()
