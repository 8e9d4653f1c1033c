"""Waterfall rendering: renderer tick loop and frame sinks."""

from .renderer import PLACEHOLDER_TEXT, Renderer
from .sinks import PngFrameSink

__all__ = ["Renderer", "PngFrameSink", "PLACEHOLDER_TEXT"]
