"""Pluggable spectrum sources."""

from .base import SpectrumSource
from .simulated import SimulatedSpectrumSource
from .stream import StreamSpectrumSource, build_state_router

__all__ = [
    "SpectrumSource",
    "SimulatedSpectrumSource",
    "StreamSpectrumSource",
    "build_state_router",
]
