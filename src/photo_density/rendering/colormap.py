"""
Color Mapping
=============

Piecewise-linear RGBA gradient for normalized densities.

The gradient runs from transparent blue through cyan, green and
yellow to red. Alpha rises with the hue so that low densities fade
out and high densities are both saturated and opaque.

Interpolation:
    d        = clamp(density, 0, 1)
    scaled   = d * (n_stops - 1)
    index    = min(int(scaled), n_stops - 2)
    fraction = scaled - index
    channel  = lower * (1 - fraction) + upper * fraction

The two-sided weighting hits the first and last stops exactly at
d = 0 and d = 1. color_for() and colorize() use the same float64
arithmetic and return identical values for identical inputs.
"""

import math
from typing import List, Tuple

import numpy as np


RGBA = Tuple[float, float, float, float]

COLOR_STOPS: Tuple[RGBA, ...] = (
    (0.0, 0.0, 1.0, 0.0),    # transparent blue
    (0.0, 0.4, 1.0, 0.4),    # light blue
    (0.0, 0.8, 1.0, 0.5),    # cyan
    (0.0, 1.0, 0.5, 0.6),    # green-cyan
    (0.5, 1.0, 0.0, 0.7),    # yellow-green
    (1.0, 1.0, 0.0, 0.75),   # yellow
    (1.0, 0.6, 0.0, 0.8),    # orange
    (1.0, 0.0, 0.0, 0.85),   # red
)


def validate_stops(stops) -> np.ndarray:
    """
    Check a stop table and return it as a read-only (n, 4) array.

    Raises:
        ValueError: If there are fewer than 2 stops, a stop is not an
            RGBA 4-tuple, or a component lies outside [0, 1]
    """
    table = np.array(stops, dtype=np.float64)
    if table.ndim != 2 or table.shape[1] != 4 or table.shape[0] < 2:
        raise ValueError(f"color stop table must be (n >= 2, 4), got shape {table.shape}")
    if not np.all((table >= 0.0) & (table <= 1.0)):
        raise ValueError("color stop components must lie in [0, 1]")

    table.flags.writeable = False
    return table


_STOP_ARRAY = validate_stops(COLOR_STOPS)


def _clamp_unit(density: float) -> float:
    if math.isnan(density):
        return 0.0
    return min(max(density, 0.0), 1.0)


def color_for(density: float) -> RGBA:
    """
    Map a normalized density to an RGBA tuple.

    Args:
        density: Normalized density; clamped to [0, 1], NaN maps to 0

    Returns:
        (r, g, b, a) with components in [0, 1]
    """
    d = _clamp_unit(float(density))
    count = len(COLOR_STOPS)

    scaled = d * (count - 1)
    index = min(int(scaled), count - 2)
    fraction = scaled - index

    lower = COLOR_STOPS[index]
    upper = COLOR_STOPS[index + 1]
    return tuple(
        lower[c] * (1.0 - fraction) + upper[c] * fraction
        for c in range(4)
    )


def colorize(values: np.ndarray) -> np.ndarray:
    """
    Vectorized color_for.

    Args:
        values: Array of normalized densities, any shape

    Returns:
        float64 array of shape values.shape + (4,)
    """
    d = np.asarray(values, dtype=np.float64)
    d = np.clip(np.nan_to_num(d, nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)
    count = _STOP_ARRAY.shape[0]

    scaled = d * (count - 1)
    index = np.minimum(scaled.astype(np.int64), count - 2)
    fraction = (scaled - index)[..., None]

    lower = _STOP_ARRAY[index]
    upper = _STOP_ARRAY[index + 1]
    return lower * (1.0 - fraction) + upper * fraction


def legend_stops() -> List[dict]:
    """
    Read-only description of the gradient for legend rendering.

    Returns:
        One dict per stop with its position in [0, 1] and RGBA values
    """
    count = len(COLOR_STOPS)
    return [
        {
            "position": round(i / (count - 1), 6),
            "r": r,
            "g": g,
            "b": b,
            "a": a,
        }
        for i, (r, g, b, a) in enumerate(COLOR_STOPS)
    ]
