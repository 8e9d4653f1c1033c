"""
Synthetic spectrum generator.

Stands in for device data while the status says the SDR is running: a noise
floor between -40 and -20 dBFS, a slow ripple across the band and a burst
between bins 100 and 150.
"""

import asyncio

import numpy as np

from core.live_state import LiveState
from core.models import DeviceStatus, SpectrumSample
from logger_config import get_logger

from .base import SpectrumSource

logger = get_logger("source.sim")


class SimulatedSpectrumSource(SpectrumSource):
    name = "simulated"

    def __init__(
        self,
        bins: int = 256,
        interval_s: float = 0.1,
        seed: int | None = None,
        require_running: bool = True,
    ):
        if bins < 1:
            raise ValueError("bins must be >= 1")
        self.bins = bins
        self.interval_s = interval_s
        self.require_running = require_running
        self.samples_emitted = 0
        self._rng = np.random.default_rng(seed)
        self._closed = False

        index = np.arange(bins, dtype=np.float64)
        ripple = np.sin(index / 10.0) * 10.0
        burst = np.where((index > 100) & (index < 150), np.sin(index / 5.0) * 15.0, 0.0)
        self._shape = ripple + burst

    def generate(self, status: DeviceStatus | None = None) -> SpectrumSample:
        noise = self._rng.random(self.bins) * 20.0 - 40.0
        center = status.center_frequency_hz if status is not None else None
        return SpectrumSample(values=noise + self._shape, center_frequency_hz=center)

    async def run(self, state: LiveState) -> None:
        logger.info(f"Simulated source started ({self.bins} bins every {self.interval_s * 1000:.0f}ms)")
        while not self._closed:
            _, status = state.snapshot()
            running = status is not None and bool(status.running)
            if running or not self.require_running:
                state.update_spectrum(self.generate(status))
                self.samples_emitted += 1
            await asyncio.sleep(self.interval_s)

    async def close(self) -> None:
        self._closed = True
