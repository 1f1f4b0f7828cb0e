"""
Viewport Region Math
====================

Pure functions deriving viewport regions for the heatmap.

This module handles:
    - Bounding boxes around point sets (initial "fit to photos" view)
    - Zoom in / zoom out / world view regions
    - Zoom level estimation from the longitude span

All functions return new Region values; nothing is mutated.

Example:
    from photo_density.geometry import fit_to_show, zoom_in

    region = fit_to_show(locations)
    closer = zoom_in(region)
"""

import logging
import math
from typing import Optional, Sequence

from photo_density.models.location import (
    MAX_LAT_DELTA,
    MAX_LON_DELTA,
    PhotoLocation,
    Region,
)


logger = logging.getLogger(__name__)

# Smallest span produced for a bounding box (single point, tight cluster)
MIN_BOX_SPAN = 0.01

# Fraction of the extent added around a bounding box
BOX_PADDING = 0.1

MAX_ZOOM_LEVEL = 20.0


def bounding_box(points: Sequence[PhotoLocation]) -> Optional[Region]:
    """
    Padded bounding box around a set of locations.

    Locations with non-finite coordinates are ignored.

    Args:
        points: Locations to enclose

    Returns:
        Region centered on the extent with 10% padding and at least
        MIN_BOX_SPAN degrees per axis, or None if there is nothing
        to enclose
    """
    finite = [p for p in points if p.is_finite]
    if not finite:
        return None

    lats = [p.latitude for p in finite]
    lons = [p.longitude for p in finite]
    min_lat, max_lat = min(lats), max(lats)
    min_lon, max_lon = min(lons), max(lons)

    lat_extent = max_lat - min_lat
    lon_extent = max_lon - min_lon

    return Region(
        center_lat=(min_lat + max_lat) / 2,
        center_lon=(min_lon + max_lon) / 2,
        lat_delta=min(max(MIN_BOX_SPAN, lat_extent * (1 + BOX_PADDING)), MAX_LAT_DELTA),
        lon_delta=min(max(MIN_BOX_SPAN, lon_extent * (1 + BOX_PADDING)), MAX_LON_DELTA),
    )


def fit_to_show(
    points: Sequence[PhotoLocation],
    padding: float = 1.3,
) -> Optional[Region]:
    """Bounding box of the locations, enlarged by `padding`."""
    box = bounding_box(points)
    if box is None:
        return None

    region = box.with_span(
        min(box.lat_delta * padding, MAX_LAT_DELTA),
        min(box.lon_delta * padding, MAX_LON_DELTA),
    )
    logger.debug(f"Fitted viewport to {len(points)} locations: {region.to_dict()}")
    return region


def zoom_in(region: Region) -> Region:
    """
    Halve both spans around the same center.

    Spans stop shrinking at MIN_BOX_SPAN; a region already below it is
    left as is.
    """
    return region.with_span(
        min(region.lat_delta, max(region.lat_delta / 2, MIN_BOX_SPAN)),
        min(region.lon_delta, max(region.lon_delta / 2, MIN_BOX_SPAN)),
    )


def zoom_out(region: Region) -> Region:
    """Double both spans, capped at the whole globe."""
    return region.with_span(
        min(region.lat_delta * 2, MAX_LAT_DELTA),
        min(region.lon_delta * 2, MAX_LON_DELTA),
    )


def world_region() -> Region:
    """Region showing the whole inhabited world."""
    return Region(center_lat=20.0, center_lon=0.0, lat_delta=140.0, lon_delta=360.0)


def center_on(latitude: float, longitude: float, span: float = 0.5) -> Region:
    """Square-span region centered on a coordinate."""
    return Region(center_lat=latitude, center_lon=longitude, lat_delta=span, lon_delta=span)


def zoom_level(region: Region) -> float:
    """
    Approximate web-map zoom level for a region.

    Returns:
        log2(360 / lon_delta) clamped to [0, 20]
    """
    level = math.log2(MAX_LON_DELTA / region.lon_delta)
    return max(0.0, min(MAX_ZOOM_LEVEL, level))
