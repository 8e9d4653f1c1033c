"""
Logging for the waterfall client.

Every component logs through a WaterfallLogger obtained from get_logger():

    logger = get_logger("stream")
    logger.info("Connected", extra={"endpoint": url})
    logger.perf(f"Tick took {ms:.1f}ms")   # sampled, off unless perf logging is on

Output:
- stderr: WARNING and above, so a streaming viewer stays quiet
- logs/waterfall_<date>_<time>.log: everything at the configured level,
  rotated at 10 MB, total directory size capped (oldest files removed first)
- JSON lines instead of text when json_format is set (extra fields are merged
  into the record)

The module configures itself on import from HAMSHACK_PROD, HAMSHACK_LOG_LEVEL
and HAMSHACK_LOG_FILE_ENABLED; the viewer reconfigures from Settings.
"""

import json
import logging
import os
import sys
from collections import Counter
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGS_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_FILE_PREFIX = "waterfall_"

ROTATE_BYTES = 10 * 1024 * 1024
DEFAULT_BUDGET_MB = 100

NOISY_LIBRARIES = ("aiohttp", "websockets", "asyncio", "PIL")

_perf = {"enabled": False, "every": 50}
_perf_calls: Counter = Counter()


# =============================================================================
# FORMATTERS AND FILE MANAGEMENT
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per line; extra fields become top-level keys."""

    def format(self, record):
        entry = dict(
            ts=datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
        )
        entry.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _text_formatter() -> logging.Formatter:
    return logging.Formatter("%(asctime)s.%(msecs)03d %(levelname)-7s %(message)s", "%H:%M:%S")


def _prune_logs(directory: Path, budget_bytes: int):
    """Remove the oldest waterfall log files until the directory fits the budget."""
    files = sorted(directory.glob(f"{LOG_FILE_PREFIX}*.log*"), key=os.path.getmtime, reverse=True)
    used = 0
    for index, path in enumerate(files):
        used += path.stat().st_size
        if used > budget_bytes and index > 0:
            path.unlink(missing_ok=True)


def _open_log_file(directory: Path, budget_bytes: int) -> logging.Handler:
    directory.mkdir(parents=True, exist_ok=True)
    _prune_logs(directory, budget_bytes)
    stamp = datetime.now().strftime("%Y-%m-%d_%H%M%S")
    return RotatingFileHandler(
        directory / f"{LOG_FILE_PREFIX}{stamp}.log",
        maxBytes=ROTATE_BYTES,
        backupCount=max(1, budget_bytes // ROTATE_BYTES - 1),
        encoding="utf-8",
    )


# =============================================================================
# CONFIGURATION
# =============================================================================


def configure_logging(
    level: str = "INFO",
    perf_enabled: bool = False,
    perf_interval: int = 50,
    json_format: bool = False,
    enable_file_logging: bool = True,
    max_storage_mb: int = DEFAULT_BUDGET_MB,
    logs_dir: Path | None = None,
):
    """
    (Re)configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        perf_enabled: emit logger.perf() samples
        perf_interval: emit one perf sample per this many calls
        json_format: JSON lines instead of text
        enable_file_logging: also write a rotating log file
        max_storage_mb: cap on the total size of the log directory
        logs_dir: log directory (default: <repo>/logs)
    """
    _perf["enabled"] = perf_enabled
    _perf["every"] = max(1, perf_interval)

    formatter = JSONFormatter() if json_format else _text_formatter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.WARNING)
    handlers = [console]

    file_error = None
    if enable_file_logging:
        try:
            handlers.append(_open_log_file(logs_dir or LOGS_DIR, max_storage_mb * 1024 * 1024))
        except OSError as e:
            file_error = e

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    if file_error is not None:
        # read-only install location: console only
        root.warning(f"File logging disabled: {file_error}")


def configure_production():
    """Warnings only, no perf sampling."""
    configure_logging(level="WARNING")


# =============================================================================
# COMPONENT LOGGER
# =============================================================================


class WaterfallLogger(logging.LoggerAdapter):
    """Per-component adapter: tags messages and carries structured extras."""

    def __init__(self, component: str):
        super().__init__(logging.getLogger(f"waterfall.{component}"), {})
        self.component = component

    def process(self, msg, kwargs):
        fields = kwargs.pop("extra", None)
        if fields:
            kwargs["extra"] = {"extra_fields": dict(fields)}
        return f"[{self.component}] {msg}", kwargs

    def perf(self, msg: str) -> bool:
        """Sampled timing message. Returns True when this call was emitted."""
        if not _perf["enabled"]:
            return False
        _perf_calls[self.component] += 1
        if _perf_calls[self.component] % _perf["every"]:
            return False
        self.info(f"[PERF] {msg}")
        return True


def get_logger(name: str) -> WaterfallLogger:
    return WaterfallLogger(name)


def reset_perf_counters():
    _perf_calls.clear()


def is_perf_enabled() -> bool:
    return _perf["enabled"]


def _env_flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


if _env_flag("HAMSHACK_PROD"):
    configure_production()
else:
    configure_logging(
        level=os.environ.get("HAMSHACK_LOG_LEVEL", "INFO"),
        enable_file_logging=_env_flag("HAMSHACK_LOG_FILE_ENABLED", "true"),
    )
