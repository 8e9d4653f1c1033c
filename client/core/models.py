"""
Data classes for the streaming pipeline.

SpectrumSample and DeviceStatus are the two values held by LiveState;
SpectrumUpdate / StatusUpdate / Unrecognized are the decoded push-stream
events that carry them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

import numpy as np

SPECTRUM_EVENT = "spectrum"
STATUS_EVENT = "sdr_status"


@dataclass(eq=False)
class SpectrumSample:
    """One power reading per frequency bin, in dBFS. Values are unbounded."""

    values: np.ndarray
    center_frequency_hz: float | None = None

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float64).reshape(-1)
        values.flags.writeable = False
        self.values = values

    @property
    def bin_count(self) -> int:
        return int(self.values.shape[0])


@dataclass(frozen=True)
class DeviceStatus:
    """Last reported device state. Fields absent on the wire are None."""

    center_frequency_hz: float | None = None
    sample_rate_hz: float | None = None
    gain_db: float | None = None
    running: bool | None = None

    @property
    def center_frequency_mhz(self) -> float | None:
        if self.center_frequency_hz is None:
            return None
        return self.center_frequency_hz / 1e6


@dataclass(eq=False)
class SpectrumUpdate:
    tag: ClassVar[str] = SPECTRUM_EVENT
    sample: SpectrumSample


@dataclass(frozen=True)
class StatusUpdate:
    tag: ClassVar[str] = STATUS_EVENT
    status: DeviceStatus


@dataclass(frozen=True)
class Unrecognized:
    """Event with a type tag this client does not understand (kept, not fatal)."""

    tag: str
    payload: dict[str, Any] = field(default_factory=dict, hash=False)


StreamEvent = SpectrumUpdate | StatusUpdate | Unrecognized


class ConnectionState(str, Enum):
    """Push-stream connection lifecycle, reported through the status callback."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one fire-and-forget control command."""

    command: str
    ok: bool
    message: str = ""
    status: int | None = None
