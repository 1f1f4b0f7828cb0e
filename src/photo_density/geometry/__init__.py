"""
Geometry Module
===============

Viewport region helpers.
"""

from photo_density.geometry.viewport import (
    MIN_BOX_SPAN,
    bounding_box,
    center_on,
    fit_to_show,
    world_region,
    zoom_in,
    zoom_level,
    zoom_out,
)

__all__ = [
    "MIN_BOX_SPAN",
    "bounding_box",
    "center_on",
    "fit_to_show",
    "world_region",
    "zoom_in",
    "zoom_level",
    "zoom_out",
]
