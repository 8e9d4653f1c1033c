"""
Renderer Tests - placeholder, bars, overlay and frame sinks.
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest

CLIENT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(CLIENT_DIR))

BLACK = (0, 0, 0)
GREEN = (0, 255, 0)
RED = (255, 0, 0)


def make_renderer(width=40, height=20, sinks=None):
    from core.live_state import LiveState
    from render.renderer import Renderer

    state = LiveState()
    return state, Renderer(state, width=width, height=height, sinks=sinks)


def has_pure(frame, channel, min_level=100):
    """True if some pixel is lit only in the given channel (0=R, 1=G, 2=B)."""
    others = [c for c in range(3) if c != channel]
    mask = frame[..., channel] >= min_level
    for c in others:
        mask &= frame[..., c] == 0
    return bool(mask.any())


# =============================================================================
# Placeholder and overlay
# =============================================================================


class TestPlaceholder:
    """Before any spectrum arrives."""

    def test_placeholder_when_empty(self):
        state, renderer = make_renderer(width=800, height=200)
        renderer.tick()
        frame = renderer.frame()

        assert renderer.showing_placeholder
        assert renderer.last_overlay == []
        assert frame.shape == (200, 800, 3)
        # dim gray text on black, nothing brighter
        assert 0 < frame.max() <= 0x33
        assert frame[0, 0].tolist() == list(BLACK)

    def test_status_only_shows_overlay_over_placeholder(self):
        from core.models import DeviceStatus

        state, renderer = make_renderer(width=800, height=200)
        state.update_status(DeviceStatus(center_frequency_hz=14_200_000, running=True))
        renderer.tick()

        assert renderer.showing_placeholder
        assert [text for text, _ in renderer.last_overlay] == ["14.200 MHz", "SDR: RUNNING"]
        assert renderer.last_overlay[1][1] == GREEN
        assert has_pure(renderer.frame(), channel=1)

    def test_stopped_is_red(self):
        from core.models import DeviceStatus

        state, renderer = make_renderer(width=800, height=200)
        state.update_status(DeviceStatus(center_frequency_hz=7_100_000, running=False))
        renderer.tick()

        assert [text for text, _ in renderer.last_overlay] == ["7.100 MHz", "SDR: STOPPED"]
        assert has_pure(renderer.frame(), channel=0)
        assert not has_pure(renderer.frame(), channel=1)

    def test_zero_frequency_displayed(self):
        from core.models import DeviceStatus

        state, renderer = make_renderer(width=800, height=200)
        state.update_status(DeviceStatus(center_frequency_hz=0.0))
        renderer.tick()
        assert [text for text, _ in renderer.last_overlay] == ["0.000 MHz"]

    def test_partial_status_omits_missing_lines(self):
        from core.models import DeviceStatus

        state, renderer = make_renderer(width=800, height=200)
        state.update_status(DeviceStatus(running=True))
        renderer.tick()
        assert [text for text, _ in renderer.last_overlay] == ["SDR: RUNNING"]


# =============================================================================
# Bars
# =============================================================================


class TestBars:
    """Bar geometry and color."""

    def test_bar_heights_and_colors(self):
        from core.models import SpectrumSample

        state, renderer = make_renderer(width=40, height=20)
        state.update_spectrum(SpectrumSample([-100.0, -50.0, 0.0, 20.0]))
        renderer.tick()
        frame = renderer.frame()

        assert not renderer.showing_placeholder

        # bin 0 at the floor: no bar at all
        assert not frame[:, 0:10].any()

        # bin 1 at half power: bottom half, hue 120 (green)
        assert frame[19, 12].tolist() == list(GREEN)
        assert frame[10, 12].tolist() == list(GREEN)
        assert frame[9, 12].tolist() == list(BLACK)

        # bins 2 and 3 at/above ceiling: full height, hue 0 (red)
        assert frame[0, 25].tolist() == list(RED)
        assert frame[0, 35].tolist() == list(RED)

        # one-pixel gap between bars
        assert frame[:, 19].tolist() == [list(BLACK)] * 20
        assert frame[:, 29].tolist() == [list(BLACK)] * 20

    def test_weak_signal_is_blue(self):
        from core.models import SpectrumSample

        state, renderer = make_renderer(width=40, height=20)
        state.update_spectrum(SpectrumSample([-95.0] * 4))
        renderer.tick()
        frame = renderer.frame()
        # n = 0.05 -> one pixel tall, hue 228 (mostly blue)
        bottom = frame[19, 0]
        assert bottom[2] == 255 and bottom[0] == 0
        assert not frame[:19].any()

    def test_nan_bins_draw_nothing(self):
        from core.models import SpectrumSample

        state, renderer = make_renderer(width=40, height=20)
        state.update_spectrum(SpectrumSample([float("nan")] * 4))
        renderer.tick()
        assert not renderer.frame().any()

    def test_more_bins_than_columns(self):
        from core.models import SpectrumSample

        state, renderer = make_renderer(width=16, height=16)
        state.update_spectrum(SpectrumSample(np.zeros(256)))
        renderer.tick()
        frame = renderer.frame()
        assert frame.shape == (16, 16, 3)
        assert (frame == RED).all(axis=-1).all()

    def test_overlay_drawn_over_bars(self):
        from core.models import DeviceStatus, SpectrumSample

        state, renderer = make_renderer(width=400, height=100)
        state.update_spectrum(SpectrumSample([-100.0] * 8))
        state.update_status(DeviceStatus(center_frequency_hz=14_200_000, running=True))
        renderer.tick()
        assert len(renderer.last_overlay) == 2
        assert has_pure(renderer.frame(), channel=1)

    def test_identical_snapshot_identical_pixels(self):
        from core.models import DeviceStatus, SpectrumSample

        state, renderer = make_renderer(width=200, height=80)
        state.update_spectrum(SpectrumSample(np.linspace(-120, 10, 64)))
        state.update_status(DeviceStatus(center_frequency_hz=14_200_000, running=True))

        renderer.tick()
        first = renderer.frame().copy()
        renderer.tick()
        assert np.array_equal(first, renderer.frame())
        assert renderer.ticks == 2

    def test_latest_sample_wins(self):
        from core.models import SpectrumSample

        state, renderer = make_renderer(width=40, height=20)
        state.update_spectrum(SpectrumSample([0.0] * 4))
        state.update_spectrum(SpectrumSample([-100.0] * 4))
        renderer.tick()
        assert not renderer.frame().any()

    def test_from_settings(self):
        from config.settings import DisplaySettings
        from core.live_state import LiveState
        from render.renderer import Renderer

        renderer = Renderer.from_settings(LiveState(), DisplaySettings(width=320, height=64, floor_db=-80.0))
        assert (renderer.width, renderer.height) == (320, 64)
        assert renderer.floor_db == -80.0


# =============================================================================
# Tick loop and sinks
# =============================================================================


class TestTickLoop:
    """Fixed-period rendering."""

    @pytest.mark.asyncio
    async def test_max_ticks(self):
        state, renderer = make_renderer()
        rendered = await renderer.run(interval_s=0.005, max_ticks=3)
        assert rendered == 3
        assert renderer.ticks == 3

    @pytest.mark.asyncio
    async def test_stop_event(self):
        state, renderer = make_renderer()
        stop = asyncio.Event()
        stop.set()
        assert await renderer.run(interval_s=0.005, stop_event=stop) == 0

    @pytest.mark.asyncio
    async def test_ticks_without_data(self):
        """Frames keep coming even when nothing arrives."""
        state, renderer = make_renderer()
        stop = asyncio.Event()
        task = asyncio.create_task(renderer.run(interval_s=0.01, stop_event=stop))
        await asyncio.sleep(0.08)
        stop.set()
        rendered = await asyncio.wait_for(task, timeout=1.0)
        assert rendered >= 3
        assert renderer.showing_placeholder


class TestPngFrameSink:
    """Latest-frame PNG output."""

    def test_writes_png(self, tmp_path):
        from PIL import Image

        from render.sinks import PngFrameSink

        path = tmp_path / "out" / "waterfall.png"
        sink = PngFrameSink(path)
        state, renderer = make_renderer(width=64, height=32, sinks=[sink])
        renderer.tick()

        assert path.exists()
        with Image.open(path) as image:
            assert image.size == (64, 32)
        assert not list(path.parent.glob(".*.tmp"))

    def test_every_n(self, tmp_path):
        from render.sinks import PngFrameSink

        sink = PngFrameSink(tmp_path / "wf.png", every_n=3)
        state, renderer = make_renderer(sinks=[sink])
        for _ in range(5):
            renderer.tick()
        assert sink.frames_seen == 5
        assert sink.frames_written == 2

    def test_invalid_every_n(self, tmp_path):
        from render.sinks import PngFrameSink

        with pytest.raises(ValueError):
            PngFrameSink(tmp_path / "wf.png", every_n=0)

    def test_failing_sink_does_not_stop_render(self):
        sink = MagicMock(side_effect=OSError("disk full"))
        state, renderer = make_renderer(sinks=[sink])
        renderer.tick()
        renderer.tick()
        assert sink.call_count == 2
        assert renderer.ticks == 2

    def test_sink_bug_does_not_stop_render(self):
        sink = MagicMock(side_effect=RuntimeError("encoder crashed"))
        state, renderer = make_renderer(sinks=[sink])
        renderer.tick()
        renderer.tick()
        assert sink.call_count == 2
        assert renderer.ticks == 2

    @pytest.mark.asyncio
    async def test_run_survives_failing_sink(self):
        sink = MagicMock(side_effect=ValueError("bad frame"))
        state, renderer = make_renderer(sinks=[sink])
        await renderer.run(interval_s=0.001, max_ticks=3)
        assert renderer.ticks == 3
        assert sink.call_count == 3
