"""
Source Tests - simulated spectra and the stream-to-state router.
"""

import asyncio
import sys
from pathlib import Path

import numpy as np
import pytest

CLIENT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(CLIENT_DIR))


class TestSimulatedSource:
    """Synthetic spectrum generator."""

    def test_shape_and_range(self):
        from core.models import DeviceStatus
        from sources.simulated import SimulatedSpectrumSource

        source = SimulatedSpectrumSource(bins=256, seed=1)
        sample = source.generate(DeviceStatus(center_frequency_hz=14_200_000, running=True))

        assert sample.bin_count == 256
        assert sample.center_frequency_hz == 14_200_000
        # noise floor -40..-20, ripple +/-10, burst +/-15
        assert sample.values.min() >= -40.0 - 10.0 - 15.0
        assert sample.values.max() <= -20.0 + 10.0 + 15.0

    def test_burst_only_in_band(self):
        from sources.simulated import SimulatedSpectrumSource

        source = SimulatedSpectrumSource(bins=256, seed=3)
        index = np.arange(256)
        ripple = np.sin(index / 10.0) * 10.0
        residual = source._shape - ripple
        assert not residual[:101].any()
        assert not residual[150:].any()
        assert residual[101:150].any()

    def test_seeded_runs_repeat(self):
        from sources.simulated import SimulatedSpectrumSource

        a = SimulatedSpectrumSource(bins=64, seed=42).generate()
        b = SimulatedSpectrumSource(bins=64, seed=42).generate()
        np.testing.assert_array_equal(a.values, b.values)

    def test_invalid_bins(self):
        from sources.simulated import SimulatedSpectrumSource

        with pytest.raises(ValueError):
            SimulatedSpectrumSource(bins=0)

    @pytest.mark.asyncio
    async def test_emits_only_while_running(self):
        from core.live_state import LiveState
        from core.models import DeviceStatus
        from sources.simulated import SimulatedSpectrumSource

        state = LiveState()
        source = SimulatedSpectrumSource(bins=32, interval_s=0.01, seed=0)
        task = asyncio.create_task(source.run(state))
        try:
            await asyncio.sleep(0.05)
            assert source.samples_emitted == 0
            assert not state.has_spectrum

            state.update_status(DeviceStatus(center_frequency_hz=7_100_000, running=True))
            await asyncio.sleep(0.05)
            assert source.samples_emitted > 0
            spectrum, _ = state.snapshot()
            assert spectrum.center_frequency_hz == 7_100_000

            state.update_status(DeviceStatus(running=False))
            await asyncio.sleep(0.03)
            emitted = source.samples_emitted
            await asyncio.sleep(0.05)
            assert source.samples_emitted == emitted
        finally:
            await source.close()
            await asyncio.wait_for(task, timeout=1.0)

    @pytest.mark.asyncio
    async def test_free_running_mode(self):
        from core.live_state import LiveState
        from sources.simulated import SimulatedSpectrumSource

        state = LiveState()
        source = SimulatedSpectrumSource(bins=8, interval_s=0.01, require_running=False)
        task = asyncio.create_task(source.run(state))
        await asyncio.sleep(0.04)
        await source.close()
        await asyncio.wait_for(task, timeout=1.0)
        assert state.has_spectrum


class TestStateRouter:
    """Stream events land in LiveState."""

    def test_routes_into_state(self):
        from core.live_state import LiveState
        from core.models import DeviceStatus, SpectrumSample, SpectrumUpdate, StatusUpdate, Unrecognized
        from sources.stream import build_state_router

        state = LiveState()
        router = build_state_router(state)

        router(StatusUpdate(DeviceStatus(running=True)))
        router(SpectrumUpdate(SpectrumSample([-60.0, -70.0])))
        assert router(Unrecognized("heartbeat")) is True

        spectrum, status = state.snapshot()
        assert status.running is True
        assert spectrum.bin_count == 2

    @pytest.mark.asyncio
    async def test_stream_source_config_error(self):
        from core.errors import ConfigError
        from core.live_state import LiveState
        from sources.stream import StreamSpectrumSource
        from stream.client import StreamClient

        source = StreamSpectrumSource(StreamClient(), "mqtt://broker/spectrum")
        with pytest.raises(ConfigError):
            await source.run(LiveState())
        await source.close()
