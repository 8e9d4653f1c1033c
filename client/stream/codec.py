"""
Push-stream payload decoding.

Every message is a JSON object with a ``type`` discriminator:

    {"type": "sdr_status", "data": {"frequency": 14200000, "sample_rate": 2400000,
                                    "gain": 30.0, "running": true}}
    {"type": "spectrum",   "data": {"spectrum": [-82.1, -80.4, ...], "frequency": 14200000}}

Unknown types decode to Unrecognized so newer servers never break older
clients. Anything that is not a JSON object with a string type raises
DecodeError.
"""

import json
import math
from typing import Any

import numpy as np

from core.errors import DecodeError
from core.models import (
    SPECTRUM_EVENT,
    STATUS_EVENT,
    DeviceStatus,
    SpectrumSample,
    SpectrumUpdate,
    StatusUpdate,
    StreamEvent,
    Unrecognized,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_number(data: dict, key: str, *, non_negative: bool = False) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise DecodeError(f"'{key}' must be a finite number, got {value!r}")
    try:
        number = float(value)
    except OverflowError as e:
        raise DecodeError(f"'{key}' is out of range for a float") from e
    if not math.isfinite(number):
        raise DecodeError(f"'{key}' must be a finite number, got {value!r}")
    if non_negative and number < 0:
        raise DecodeError(f"'{key}' must be non-negative, got {value!r}")
    return number


def decode_status(data: Any) -> DeviceStatus:
    """Decode an sdr_status body (also the /api/sdr/status response)."""
    if not isinstance(data, dict):
        raise DecodeError("status data must be an object")

    running = data.get("running")
    if running is not None and not isinstance(running, bool):
        raise DecodeError(f"'running' must be a boolean, got {running!r}")

    return DeviceStatus(
        center_frequency_hz=_optional_number(data, "frequency", non_negative=True),
        sample_rate_hz=_optional_number(data, "sample_rate", non_negative=True),
        gain_db=_optional_number(data, "gain"),
        running=running,
    )


def decode_spectrum(data: Any) -> SpectrumSample:
    """Decode a spectrum body. Bin values may be any number, including +/-inf."""
    if not isinstance(data, dict):
        raise DecodeError("spectrum data must be an object")

    values = data.get("spectrum")
    if not isinstance(values, list) or not values:
        raise DecodeError("'spectrum' must be a non-empty array")
    if not all(_is_number(v) for v in values):
        raise DecodeError("'spectrum' must contain only numbers")
    try:
        bins = np.asarray(values, dtype=np.float64)
    except (OverflowError, ValueError) as e:
        raise DecodeError(f"'spectrum' value out of range: {e}") from e

    return SpectrumSample(
        values=bins,
        center_frequency_hz=_optional_number(data, "frequency", non_negative=True),
    )


def decode_event(raw: str | bytes) -> StreamEvent:
    """
    Decode one raw push-stream message.

    Raises:
        DecodeError: payload is not JSON, not an object, lacks a string type,
            or a known type carries an invalid body.
    """
    try:
        message = json.loads(raw)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError, UnicodeDecodeError and the int digit limit
        raise DecodeError(f"invalid JSON: {e}", raw) from e

    if not isinstance(message, dict):
        raise DecodeError("payload is not a JSON object", raw)

    tag = message.get("type")
    if not isinstance(tag, str):
        raise DecodeError("missing 'type' discriminator", raw)

    try:
        if tag == STATUS_EVENT:
            return StatusUpdate(decode_status(message.get("data")))
        if tag == SPECTRUM_EVENT:
            return SpectrumUpdate(decode_spectrum(message.get("data")))
    except DecodeError as e:
        e.raw = raw
        raise
    except (OverflowError, ValueError, RecursionError) as e:
        raise DecodeError(f"invalid {tag} body: {e}", raw) from e

    return Unrecognized(tag=tag, payload=message)
