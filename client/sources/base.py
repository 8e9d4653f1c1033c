"""
SpectrumSource - anything that can keep LiveState fed.

Live device data (the push stream) and synthetic data (the simulator) share
this interface so the viewer and the tests can swap one for the other.
"""

from abc import ABC, abstractmethod

from core.live_state import LiveState


class SpectrumSource(ABC):
    name = "source"

    @abstractmethod
    async def run(self, state: LiveState) -> None:
        """Write samples (and possibly statuses) into state until closed or cancelled."""

    async def close(self) -> None:
        """Release any resources held by the source."""
