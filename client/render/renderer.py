"""
Spectrum renderer - paints LiveState snapshots into an RGB surface.

Each tick:
1. Snapshots LiveState (never waits on the network)
2. Paints the placeholder if no spectrum has ever arrived, otherwise one
   bottom-aligned bar per bin, height and hue from normalized dBFS
3. Overlays center frequency (MHz) and RUNNING/STOPPED when a status is known
4. Hands the frame to any registered sinks

The tick period is fixed and independent of data arrival; an unchanged
snapshot renders to identical pixels.
"""

import asyncio
import time
from collections.abc import Callable

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from colormaps import (
    BACKGROUND_RGB,
    DEFAULT_CEILING_DB,
    DEFAULT_FLOOR_DB,
    OVERLAY_TEXT_RGB,
    PLACEHOLDER_TEXT_RGB,
    RUNNING_RGB,
    STOPPED_RGB,
    hsl_to_rgb,
    normalize_db,
    power_to_hue,
)
from config.settings import DisplaySettings
from core.live_state import LiveState
from core.models import DeviceStatus, SpectrumSample
from logger_config import get_logger

logger = get_logger("render")

PLACEHOLDER_TEXT = "Waiting for SDR data..."
OVERLAY_ORIGIN = (10, 8)
OVERLAY_LINE_HEIGHT = 20

FrameSink = Callable[[Image.Image], None]


class Renderer:
    """Turns the latest spectrum/status into pixels on every tick."""

    def __init__(
        self,
        state: LiveState,
        width: int = 800,
        height: int = 200,
        floor_db: float = DEFAULT_FLOOR_DB,
        ceiling_db: float = DEFAULT_CEILING_DB,
        sinks: list[FrameSink] | None = None,
    ):
        self.state = state
        self.width = width
        self.height = height
        self.floor_db = floor_db
        self.ceiling_db = ceiling_db
        self.sinks = list(sinks or [])

        self._placeholder_font = ImageFont.load_default(size=16)
        self._overlay_font = ImageFont.load_default(size=12)

        self.surface = Image.new("RGB", (width, height), BACKGROUND_RGB)
        self.ticks = 0
        self.showing_placeholder = True
        self.last_overlay: list[tuple[str, tuple[int, int, int]]] = []

    @classmethod
    def from_settings(cls, state: LiveState, display: DisplaySettings, sinks=None) -> "Renderer":
        return cls(
            state,
            width=display.width,
            height=display.height,
            floor_db=display.floor_db,
            ceiling_db=display.ceiling_db,
            sinks=sinks,
        )

    # -------------------------------------------------------------------------
    # Painting
    # -------------------------------------------------------------------------

    def tick(self) -> Image.Image:
        """Render one frame from the current LiveState snapshot."""
        spectrum, status = self.state.snapshot()

        if spectrum is None:
            image = self._paint_placeholder()
        else:
            image = Image.fromarray(self._paint_bars(spectrum))
        self.showing_placeholder = spectrum is None

        self.last_overlay = self._overlay_lines(status)
        if self.last_overlay:
            draw = ImageDraw.Draw(image)
            x, y = OVERLAY_ORIGIN
            for text, color in self.last_overlay:
                draw.text((x, y), text, fill=color, font=self._overlay_font)
                y += OVERLAY_LINE_HEIGHT

        self.surface = image
        self.ticks += 1

        for sink in self.sinks:
            try:
                sink(image)
            except Exception as e:
                logger.error(f"Frame sink failed: {e}")

        return image

    def _paint_placeholder(self) -> Image.Image:
        image = Image.new("RGB", (self.width, self.height), BACKGROUND_RGB)
        draw = ImageDraw.Draw(image)
        left, top, right, bottom = draw.textbbox((0, 0), PLACEHOLDER_TEXT, font=self._placeholder_font)
        x = (self.width - (right - left)) // 2 - left
        y = (self.height - (bottom - top)) // 2 - top
        draw.text((x, y), PLACEHOLDER_TEXT, fill=PLACEHOLDER_TEXT_RGB, font=self._placeholder_font)
        return image

    def _paint_bars(self, spectrum: SpectrumSample) -> np.ndarray:
        """
        One bar per bin: height n*H (bottom aligned), hsl(240 - 240n, 100%, 50%).

        Bar i spans columns [i*W//N, (i+1)*W//N), less a one-pixel gap when
        the bar is at least two pixels wide. With more bins than columns,
        later bins overwrite earlier ones in a shared column.
        """
        frame = np.empty((self.height, self.width, 3), dtype=np.uint8)
        frame[:] = BACKGROUND_RGB

        normalized = normalize_db(spectrum.values, self.floor_db, self.ceiling_db)
        colors = hsl_to_rgb(power_to_hue(normalized))
        heights = np.rint(normalized * self.height).astype(np.int64)

        bins = len(normalized)
        for i in range(bins):
            bar_height = heights[i]
            if bar_height <= 0:
                continue
            x0 = i * self.width // bins
            x1 = (i + 1) * self.width // bins
            if x1 - x0 > 1:
                x1 -= 1
            x1 = max(x1, x0 + 1)
            frame[self.height - bar_height :, x0:x1] = colors[i]

        return frame

    @staticmethod
    def _overlay_lines(status: DeviceStatus | None) -> list[tuple[str, tuple[int, int, int]]]:
        if status is None:
            return []

        lines = []
        if status.center_frequency_mhz is not None:
            lines.append((f"{status.center_frequency_mhz:.3f} MHz", OVERLAY_TEXT_RGB))
        if status.running is not None:
            if status.running:
                lines.append(("SDR: RUNNING", RUNNING_RGB))
            else:
                lines.append(("SDR: STOPPED", STOPPED_RGB))
        return lines

    def frame(self) -> np.ndarray:
        """Current surface as an (H, W, 3) uint8 array."""
        return np.asarray(self.surface)

    # -------------------------------------------------------------------------
    # Tick loop
    # -------------------------------------------------------------------------

    async def run(
        self,
        interval_s: float = 0.1,
        max_ticks: int | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> int:
        """
        Tick at a fixed period until stopped.

        Returns the number of ticks rendered by this call.
        """
        rendered = 0
        logger.info(f"Render loop started ({1.0 / interval_s:.1f} fps, {self.width}x{self.height})")

        while max_ticks is None or rendered < max_ticks:
            if stop_event is not None and stop_event.is_set():
                break

            frame_start = time.perf_counter()
            self.tick()
            rendered += 1

            elapsed = time.perf_counter() - frame_start
            logger.perf(f"Tick took {elapsed * 1000:.1f}ms")
            if max_ticks is not None and rendered >= max_ticks:
                break
            await asyncio.sleep(max(0.001, interval_s - elapsed))

        logger.info(f"Render loop stopped after {rendered} ticks")
        return rendered
