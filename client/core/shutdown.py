"""
Graceful shutdown for the watch loop.

SIGINT/SIGTERM (or request_shutdown() from any thread) trips a process-wide
flag and wakes the asyncio event the renderer loop polls between ticks.
"""

import asyncio
import signal
import sys
import threading

from logger_config import get_logger

logger = get_logger("shutdown")

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class _ShutdownState:
    def __init__(self):
        self.flag = threading.Event()
        self.event: asyncio.Event | None = None
        self.loop: asyncio.AbstractEventLoop | None = None

    def bind(self, loop: asyncio.AbstractEventLoop) -> asyncio.Event:
        if self.event is None or self.loop is not loop:
            self.loop = loop
            self.event = asyncio.Event()
            if self.flag.is_set():
                self.event.set()
        return self.event

    def trip(self):
        self.flag.set()
        loop, event = self.loop, self.event
        if loop is None or event is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(event.set)


_state = _ShutdownState()


def is_shutting_down() -> bool:
    return _state.flag.is_set()


def request_shutdown():
    """Ask every loop to wind down. Thread-safe."""
    logger.info("Shutdown requested")
    _state.trip()


def get_async_event() -> asyncio.Event:
    """Shutdown event bound to the running loop (pre-set if already requested)."""
    return _state.bind(asyncio.get_running_loop())


async def wait_for_shutdown_async():
    await get_async_event().wait()


def reset():
    """Forget any previous request (tests, repeated CLI runs in one process)."""
    global _state
    _state = _ShutdownState()


def _signal_handler(signum, frame=None):
    name = signal.Signals(signum).name
    logger.warning(f"Caught {name}, stopping", extra={"signal": name})
    request_shutdown()


def setup_signal_handlers():
    """Route SIGINT/SIGTERM to request_shutdown() for the running loop."""
    loop = asyncio.get_running_loop()
    _state.bind(loop)
    if sys.platform == "win32":
        # no loop signal support on Windows
        for signum in HANDLED_SIGNALS:
            signal.signal(signum, _signal_handler)
    else:
        for signum in HANDLED_SIGNALS:
            loop.add_signal_handler(signum, _signal_handler, signum)
    logger.debug("Signal handlers installed")
