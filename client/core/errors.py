"""
Error taxonomy for the waterfall client.

Stream-side errors (DecodeError, TransportError) are contained inside the
stream client. ConfigError and ValidationError are raised to the caller.
CommandError is recorded through a diagnostic callback and never raised by
the control client.
"""


class WaterfallError(Exception):
    """Base class for all waterfall client errors."""


class ConfigError(WaterfallError):
    """Invalid endpoint or configuration; fatal to the affected subscription."""


class ValidationError(WaterfallError):
    """Invalid control input, rejected before any network call."""


class DecodeError(WaterfallError):
    """Malformed push-stream payload. The message is dropped."""

    def __init__(self, message: str, raw: str | bytes | None = None):
        super().__init__(message)
        self.raw = raw


class TransportError(WaterfallError):
    """Push-stream connection lost or refused. Recovered by reconnecting."""


class CommandError(WaterfallError):
    """A control request failed (network error, non-OK status or rejected)."""

    def __init__(self, command: str, message: str, status: int | None = None):
        super().__init__(f"{command}: {message}")
        self.command = command
        self.status = status
