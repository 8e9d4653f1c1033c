"""
Power -> color mapping for the waterfall bars.

The spectrum display uses an HSL hue sweep rather than a perceptual LUT:
- dBFS is normalized into [0, 1] between a floor (-100) and a ceiling (0)
- hue = 240 - n * 240, so weak bins are blue and strong bins are red
- saturation 100%, lightness 50%

Usage:
    from colormaps import normalize_db, power_to_hue, hsl_to_rgb

    n = normalize_db(values)          # float64 array in [0, 1]
    rgb = hsl_to_rgb(power_to_hue(n)) # uint8 array, shape (*n.shape, 3)
"""

import numpy as np

# =============================================================================
# DISPLAY CONSTANTS
# =============================================================================

DEFAULT_FLOOR_DB = -100.0
DEFAULT_CEILING_DB = 0.0

HUE_LOW_POWER = 240.0  # blue
HUE_HIGH_POWER = 0.0  # red

BACKGROUND_RGB = (0, 0, 0)
PLACEHOLDER_TEXT_RGB = (0x33, 0x33, 0x33)
OVERLAY_TEXT_RGB = (0xFF, 0xFF, 0xFF)
RUNNING_RGB = (0x00, 0xFF, 0x00)
STOPPED_RGB = (0xFF, 0x00, 0x00)


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_db(
    values_db, floor_db: float = DEFAULT_FLOOR_DB, ceiling_db: float = DEFAULT_CEILING_DB
) -> np.ndarray:
    """
    Map dBFS readings onto [0, 1].

    Values at or below floor_db map to 0, at or above ceiling_db to 1.
    NaN is treated as the floor; +/-inf clamp to the matching end.

    Args:
        values_db: scalar or array of dBFS readings
        floor_db: reading mapped to 0
        ceiling_db: reading mapped to 1

    Returns:
        float64 array with the same shape as values_db
    """
    values = np.asarray(values_db, dtype=np.float64)
    span = ceiling_db - floor_db
    normalized = np.clip((values - floor_db) / span, 0.0, 1.0)
    return np.nan_to_num(normalized, nan=0.0)


def power_to_hue(normalized) -> np.ndarray:
    """Hue in degrees for normalized power: 240 at n=0 down to 0 at n=1."""
    n = np.asarray(normalized, dtype=np.float64)
    return HUE_LOW_POWER - n * (HUE_LOW_POWER - HUE_HIGH_POWER)


# =============================================================================
# HSL -> RGB
# =============================================================================


def hsl_to_rgb(hue, saturation: float = 1.0, lightness: float = 0.5) -> np.ndarray:
    """
    Vectorized CSS-style hsl() conversion.

    Args:
        hue: degrees, scalar or array
        saturation: 0-1
        lightness: 0-1

    Returns:
        uint8 array with shape (*hue.shape, 3)
    """
    h = np.mod(np.asarray(hue, dtype=np.float64), 360.0)
    a = saturation * min(lightness, 1.0 - lightness)

    channels = []
    for offset in (0.0, 8.0, 4.0):  # R, G, B
        k = np.mod(offset + h / 30.0, 12.0)
        f = lightness - a * np.maximum(-1.0, np.minimum(np.minimum(k - 3.0, 9.0 - k), 1.0))
        channels.append(f)

    rgb = np.stack(channels, axis=-1)
    return np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)


def power_to_rgb(
    values_db, floor_db: float = DEFAULT_FLOOR_DB, ceiling_db: float = DEFAULT_CEILING_DB
) -> np.ndarray:
    """dBFS readings straight to bar colors."""
    return hsl_to_rgb(power_to_hue(normalize_db(values_db, floor_db, ceiling_db)))
