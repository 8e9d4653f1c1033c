"""
Backend reachability monitor.

Polls /api/health on a fixed period and reports transitions between
connected and disconnected. Purely observational: it never touches the
stream subscription or LiveState.
"""

import asyncio
from collections.abc import Callable

from logger_config import get_logger

from .client import ControlClient

logger = get_logger("health")


class HealthMonitor:
    def __init__(
        self,
        control: ControlClient,
        interval_s: float = 5.0,
        on_change: Callable[[bool], None] | None = None,
    ):
        self.control = control
        self.interval_s = interval_s
        self.on_change = on_change
        self.connected: bool | None = None
        self.checks = 0
        self.failures = 0
        self._task: asyncio.Task | None = None

    async def poll_once(self) -> bool:
        ok = await self.control.check_health()
        self.checks += 1
        if not ok:
            self.failures += 1

        if ok != self.connected:
            logger.info(f"Backend {'connected' if ok else 'disconnected'}")
            self.connected = ok
            if self.on_change is not None:
                self.on_change(ok)
        return ok

    async def run(self):
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_s)

    def start(self):
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run(), name="health-monitor")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
