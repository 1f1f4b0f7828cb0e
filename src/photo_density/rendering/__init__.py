"""
Rendering Module
================

Turns density grids into map overlay images.

Components:
    - color_for / colorize: Piecewise-linear RGBA gradient
    - HeatmapRenderer: Disc rasterization + Gaussian smoothing
    - encode_png: PNG transport encoding
"""

from photo_density.rendering.colormap import (
    COLOR_STOPS,
    color_for,
    colorize,
    legend_stops,
    validate_stops,
)
from photo_density.rendering.synthesizer import HeatmapRenderer
from photo_density.rendering.encoding import (
    ImageEncodeError,
    decode_png,
    encode_png,
    encode_png_base64,
)


__all__ = [
    "COLOR_STOPS",
    "color_for",
    "colorize",
    "legend_stops",
    "validate_stops",
    "HeatmapRenderer",
    "ImageEncodeError",
    "decode_png",
    "encode_png",
    "encode_png_base64",
]
