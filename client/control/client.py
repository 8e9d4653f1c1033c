"""
Fire-and-forget device control over the HamShack HTTP API.

    GET /api/sdr/start
    GET /api/sdr/stop
    GET /api/sdr/frequency/{hz}
    GET /api/sdr/status      (one-shot status read)
    GET /api/health

Commands never raise for network or device failures: the failure is logged,
handed to the on_error callback as a CommandError, and returned as a
CommandResult with ok=False. The effect of a command is confirmed by the next
sdr_status event on the push stream, not by the response. Invalid input is
rejected with ValidationError before any request is made.
"""

import asyncio
import math
import numbers
from collections.abc import Callable

import aiohttp

from config.settings import ControlSettings
from core.errors import CommandError, DecodeError, ValidationError
from core.models import CommandResult, DeviceStatus
from logger_config import get_logger
from stream.codec import decode_status

logger = get_logger("control")

ErrorCallback = Callable[[CommandError], None]


def validate_frequency(hz) -> int:
    """Return hz as integer hertz, or raise ValidationError."""
    if isinstance(hz, bool) or not isinstance(hz, numbers.Real):
        raise ValidationError(f"Frequency must be a number, got {hz!r}")
    try:
        finite = math.isfinite(hz)
    except OverflowError:
        finite = False
    if not finite or hz <= 0:
        raise ValidationError(f"Frequency must be positive and finite, got {hz!r}")
    hz_int = int(round(hz))
    if hz_int < 1:
        raise ValidationError(f"Frequency rounds to {hz_int} Hz")
    return hz_int


class ControlClient:
    """Issues start/stop/tune commands. Holds no device state."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout_s: float = 5.0,
        presets_hz: list[int] | None = None,
        on_error: ErrorCallback | None = None,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.presets_hz = list(presets_hz or [])
        self.on_error = on_error
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: ControlSettings, **kwargs) -> "ControlClient":
        return cls(
            base_url=settings.base_url,
            timeout_s=settings.timeout_s,
            presets_hz=settings.presets_hz,
            **kwargs,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_s)
            )
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def start(self) -> CommandResult:
        """Start acquisition."""
        return await self._command("start", "/api/sdr/start")

    async def stop(self) -> CommandResult:
        """Stop acquisition."""
        return await self._command("stop", "/api/sdr/stop")

    async def set_frequency(self, hz) -> CommandResult:
        """
        Tune the device.

        Raises:
            ValidationError: hz is not a positive finite number
        """
        hz_int = validate_frequency(hz)
        return await self._command("set_frequency", f"/api/sdr/frequency/{hz_int}")

    async def tune_preset(self, index: int) -> CommandResult:
        """Tune to one of the configured quick-tune presets."""
        if not 0 <= index < len(self.presets_hz):
            raise ValidationError(f"No preset {index} (have {len(self.presets_hz)})")
        return await self.set_frequency(self.presets_hz[index])

    async def _command(self, command: str, path: str) -> CommandResult:
        url = f"{self.base_url}{path}"
        logger.debug(f"{command}: GET {url}")

        try:
            async with self._get_session().get(url) as response:
                status = response.status
                body = await self._read_json(response)

                if not 200 <= status < 300:
                    raise CommandError(command, f"HTTP {status}", status=status)
                if isinstance(body, dict) and body.get("success") is False:
                    raise CommandError(
                        command, str(body.get("message") or "rejected by device"), status=status
                    )
        except CommandError as e:
            return self._failed(e)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return self._failed(CommandError(command, str(e) or type(e).__name__))

        message = str(body.get("message", "")) if isinstance(body, dict) else ""
        logger.info(f"{command}: {message or 'ok'}")
        return CommandResult(command=command, ok=True, message=message, status=status)

    def _failed(self, error: CommandError) -> CommandResult:
        logger.warning(f"Command failed: {error}", extra={"command": error.command, "status": error.status})
        if self.on_error is not None:
            self.on_error(error)
        return CommandResult(command=error.command, ok=False, message=str(error), status=error.status)

    @staticmethod
    async def _read_json(response):
        try:
            return await response.json(content_type=None)
        except (ValueError, aiohttp.ContentTypeError):
            return None

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def fetch_status(self) -> DeviceStatus | None:
        """One-shot read of /api/sdr/status. None (and a diagnostic) on failure."""
        url = f"{self.base_url}/api/sdr/status"
        try:
            async with self._get_session().get(url) as response:
                if not 200 <= response.status < 300:
                    raise CommandError("status", f"HTTP {response.status}", status=response.status)
                body = await self._read_json(response)
            return decode_status(body)
        except CommandError as e:
            self._failed(e)
        except DecodeError as e:
            self._failed(CommandError("status", f"bad status body: {e}"))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._failed(CommandError("status", str(e) or type(e).__name__))
        return None

    async def check_health(self) -> bool:
        """True if /api/health answers with a success status."""
        url = f"{self.base_url}/api/health"
        try:
            async with self._get_session().get(url) as response:
                return 200 <= response.status < 300
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Health check failed: {e}")
            return False
