"""
Single-slot live state shared by the stream consumer and the renderer.

Holds the most recent SpectrumSample and DeviceStatus. Every update is a
full-value replacement and every read is a full-value snapshot, so a fast
producer never queues frames behind a slow renderer: intermediate samples
are simply overwritten.
"""

import threading

from .models import DeviceStatus, SpectrumSample


class LiveState:
    """Last-write-wins store for the latest spectrum and status."""

    def __init__(self):
        self._lock = threading.Lock()
        self._spectrum: SpectrumSample | None = None
        self._status: DeviceStatus | None = None
        self.spectrum_updates = 0
        self.status_updates = 0

    def update_spectrum(self, sample: SpectrumSample) -> None:
        with self._lock:
            self._spectrum = sample
            self.spectrum_updates += 1

    def update_status(self, status: DeviceStatus) -> None:
        with self._lock:
            self._status = status
            self.status_updates += 1

    def snapshot(self) -> tuple[SpectrumSample | None, DeviceStatus | None]:
        """Return (spectrum, status); either may be None if never received."""
        with self._lock:
            return self._spectrum, self._status

    @property
    def has_spectrum(self) -> bool:
        return self._spectrum is not None

    def clear(self) -> None:
        """Drop both slots (view teardown)."""
        with self._lock:
            self._spectrum = None
            self._status = None
