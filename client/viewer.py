"""
HamShack waterfall viewer - wires the streaming pipeline together and
exposes the control commands on the command line.

    push stream --> StreamClient --> LiveState <-- Renderer tick --> PNG sink
                                        ^
                     SimulatedSpectrumSource (optional, --simulate)

    ControlClient: start / stop / tune   (side channel, fire-and-forget)
    HealthMonitor: /api/health polling   (observational)

Usage:
    python viewer.py watch --output waterfall.png
    python viewer.py watch --endpoint ws://pi.local:3000/ws --ticks 50
    python viewer.py start
    python viewer.py tune 14200000
    python viewer.py preset 1
    python viewer.py status
"""

import argparse
import asyncio
import sys

from config.settings import Settings, get_settings
from control import ControlClient, HealthMonitor
from core import shutdown
from core.errors import ConfigError, ValidationError, WaterfallError
from core.live_state import LiveState
from core.models import CommandResult, ConnectionState
from logger_config import configure_logging, get_logger
from render import PngFrameSink, Renderer
from sources import SimulatedSpectrumSource, SpectrumSource, StreamSpectrumSource
from stream import StreamClient, validate_endpoint

logger = get_logger("viewer")


class WaterfallViewer:
    """One live view: sources feeding LiveState, a renderer reading it."""

    def __init__(self, settings: Settings, output: str | None = None, every_n: int = 1):
        self.settings = settings
        self.state = LiveState()

        self.stream_client = StreamClient.from_settings(
            settings.stream,
            on_state=self._on_stream_state,
            on_error=self._on_stream_error,
        )
        self.control = ControlClient.from_settings(settings.control)

        self.sources: list[SpectrumSource] = [
            StreamSpectrumSource(self.stream_client, settings.stream.endpoint)
        ]
        if settings.simulation.enabled:
            self.sources.append(
                SimulatedSpectrumSource(
                    bins=settings.simulation.bins,
                    interval_s=settings.simulation.interval_ms / 1000.0,
                    seed=settings.simulation.seed,
                )
            )

        sinks = [PngFrameSink(output, every_n=every_n)] if output else []
        self.renderer = Renderer.from_settings(self.state, settings.display, sinks=sinks)

        self.health: HealthMonitor | None = None
        if settings.health.enabled:
            self.health = HealthMonitor(
                self.control,
                interval_s=settings.health.interval_s,
                on_change=self._on_health_change,
            )

        self.stream_state = ConnectionState.CONNECTING
        self.backend_connected: bool | None = None
        self._tasks: list[asyncio.Task] = []

    def _on_stream_state(self, state: ConnectionState):
        self.stream_state = state
        logger.info(f"Stream {state.value}")

    def _on_stream_error(self, error: WaterfallError):
        logger.debug(f"Stream diagnostic: {error}")

    def _on_health_change(self, connected: bool):
        self.backend_connected = connected
        if not connected:
            logger.warning(f"Backend unreachable at {self.control.base_url}")

    async def run(self, max_ticks: int | None = None) -> int:
        """
        Run until shutdown (or max_ticks frames). Returns frames rendered.

        Raises:
            ConfigError: the stream endpoint is malformed
        """
        validate_endpoint(self.settings.stream.endpoint)

        loop = asyncio.get_running_loop()
        for source in self.sources:
            self._tasks.append(loop.create_task(source.run(self.state), name=f"source:{source.name}"))
        if self.health is not None:
            self.health.start()

        try:
            return await self.renderer.run(
                interval_s=self.settings.display.tick_interval_ms / 1000.0,
                max_ticks=max_ticks,
                stop_event=shutdown.get_async_event(),
            )
        finally:
            await self.close()

    async def close(self):
        """Tear down the view: stop sources, release connections, drop state."""
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Source task failed: {e}")
        self._tasks.clear()

        for source in self.sources:
            await source.close()
        if self.health is not None:
            await self.health.stop()
        await self.control.close()
        self.state.clear()
        logger.info("Viewer closed")


# =============================================================================
# CLI
# =============================================================================


def _print_result(result: CommandResult) -> int:
    status = "OK" if result.ok else "FAILED"
    detail = f" - {result.message}" if result.message else ""
    print(f"{result.command}: {status}{detail}")
    return 0 if result.ok else 1


async def _cmd_watch(args, settings: Settings) -> int:
    shutdown.reset()
    viewer = WaterfallViewer(settings, output=args.output, every_n=args.every)
    shutdown.setup_signal_handlers()
    frames = await viewer.run(max_ticks=args.ticks)
    print(f"Rendered {frames} frames")
    return 0


async def _cmd_control(args, settings: Settings) -> int:
    async with ControlClient.from_settings(settings.control) as control:
        if args.command == "start":
            return _print_result(await control.start())
        if args.command == "stop":
            return _print_result(await control.stop())
        if args.command == "tune":
            return _print_result(await control.set_frequency(args.hz))
        if args.command == "preset":
            return _print_result(await control.tune_preset(args.index))
        if args.command == "status":
            status = await control.fetch_status()
            if status is None:
                print("status: FAILED")
                return 1
            freq = f"{status.center_frequency_mhz:.3f} MHz" if status.center_frequency_hz is not None else "N/A"
            rate = f"{status.sample_rate_hz / 1e6:.1f} MS/s" if status.sample_rate_hz is not None else "N/A"
            gain = f"{status.gain_db} dB" if status.gain_db is not None else "N/A"
            running = {True: "RUNNING", False: "STOPPED", None: "UNKNOWN"}[status.running]
            print(f"Frequency: {freq}\nSample Rate: {rate}\nGain: {gain}\nSDR: {running}")
            return 0
        if args.command == "health":
            ok = await control.check_health()
            print(f"Backend: {'connected' if ok else 'disconnected'}")
            return 0 if ok else 1
    raise ValueError(f"Unknown command {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HamShack SDR waterfall client")
    parser.add_argument("--log-level", default=None, help="Override HAMSHACK_LOG_LEVEL")
    parser.add_argument("--control-url", default=None, help="Control service root URL")
    sub = parser.add_subparsers(dest="command", required=True)

    watch = sub.add_parser("watch", help="Stream and render the live spectrum")
    watch.add_argument("--endpoint", default=None, help="Push-stream URL (http(s) SSE or ws(s))")
    watch.add_argument("--output", default=None, help="PNG path updated with the latest frame")
    watch.add_argument("--every", type=int, default=1, help="Write every Nth frame to --output")
    watch.add_argument("--ticks", type=int, default=None, help="Stop after N frames")
    watch.add_argument("--simulate", action="store_true", help="Feed simulated spectra while running")
    watch.add_argument("--no-health", action="store_true", help="Disable /api/health polling")

    sub.add_parser("start", help="Start acquisition")
    sub.add_parser("stop", help="Stop acquisition")
    tune = sub.add_parser("tune", help="Tune to a frequency in Hz")
    tune.add_argument("hz", type=float)
    preset = sub.add_parser("preset", help="Tune to a configured preset (0 = 14.2 MHz, 1 = 7.1 MHz)")
    preset.add_argument("index", type=int)
    sub.add_parser("status", help="Print the device status once")
    sub.add_parser("health", help="Probe /api/health")
    return parser


def apply_overrides(settings: Settings, args) -> Settings:
    """Fold command-line overrides into a copy of the settings."""
    settings = settings.model_copy(deep=True)
    if args.control_url:
        settings.control.base_url = args.control_url
    if getattr(args, "endpoint", None):
        settings.stream.endpoint = args.endpoint
    if getattr(args, "simulate", False):
        settings.simulation.enabled = True
    if getattr(args, "no_health", False):
        settings.health.enabled = False
    return settings


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(), args)

    configure_logging(
        level=args.log_level or settings.logging.level,
        json_format=settings.logging.json_format,
        enable_file_logging=settings.logging.file_enabled,
    )

    handler = _cmd_watch if args.command == "watch" else _cmd_control
    try:
        return asyncio.run(handler(args, settings))
    except (ConfigError, ValidationError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
