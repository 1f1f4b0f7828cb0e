"""
Location Models
===============

Geographic primitives consumed by the density pipeline.

Supported Types:
    - PhotoLocation: A single geotagged photo sample
    - Region: Rectangular viewport (center + span, in degrees)

Design Rules:
    - Both types are immutable (frozen dataclasses)
    - Points are owned by the caller; the pipeline only reads them
    - A Region constructed directly is always valid; use
      Region.from_values() for lenient construction from UI input

Example:
    from photo_density.models import PhotoLocation, Region

    region = Region(center_lat=45.0, center_lon=9.0, lat_delta=1.0, lon_delta=1.0)
    point = PhotoLocation(id="IMG_0001", latitude=45.1, longitude=9.2)
    assert region.contains(point.latitude, point.longitude)
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


# Spans larger than this cover the whole globe
MAX_LAT_DELTA = 180.0
MAX_LON_DELTA = 360.0


@dataclass(frozen=True, slots=True)
class PhotoLocation:
    """
    Geotagged photo sample.

    Attributes:
        id: Stable identifier of the photo (asset id, filename, ...)
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        timestamp: Optional capture time
    """

    id: str
    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None

    @property
    def is_finite(self) -> bool:
        """True when both coordinates are finite numbers."""
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)

    def __repr__(self) -> str:
        return (
            f"PhotoLocation(id={self.id!r}, "
            f"lat={self.latitude:.5f}, lon={self.longitude:.5f})"
        )


@dataclass(frozen=True, slots=True)
class Region:
    """
    Rectangular viewport region in degrees.

    The region covers [center - span/2, center + span/2] on both axes.

    Attributes:
        center_lat: Latitude of the region center
        center_lon: Longitude of the region center
        lat_delta: Latitude span (degrees, > 0)
        lon_delta: Longitude span (degrees, > 0)
    """

    center_lat: float
    center_lon: float
    lat_delta: float
    lon_delta: float

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not (math.isfinite(self.center_lat) and math.isfinite(self.center_lon)):
            raise ValueError("region center must be finite")
        if not (math.isfinite(self.lat_delta) and math.isfinite(self.lon_delta)):
            raise ValueError("region span must be finite")
        if self.lat_delta <= 0 or self.lon_delta <= 0:
            raise ValueError("region span must be positive")

    @classmethod
    def from_values(
        cls,
        center_lat: float,
        center_lon: float,
        lat_delta: float,
        lon_delta: float,
    ) -> Optional["Region"]:
        """
        Build a region from untrusted values.

        Oversize spans are clamped to the globe. Degenerate input
        (zero, negative or non-finite values) yields None instead of
        raising, so callers can skip the recomputation.
        """
        values = (center_lat, center_lon, lat_delta, lon_delta)
        if not all(math.isfinite(v) for v in values):
            return None
        if lat_delta <= 0 or lon_delta <= 0:
            return None

        return cls(
            center_lat=center_lat,
            center_lon=center_lon,
            lat_delta=min(lat_delta, MAX_LAT_DELTA),
            lon_delta=min(lon_delta, MAX_LON_DELTA),
        )

    @property
    def min_lat(self) -> float:
        return self.center_lat - self.lat_delta / 2

    @property
    def max_lat(self) -> float:
        return self.center_lat + self.lat_delta / 2

    @property
    def min_lon(self) -> float:
        return self.center_lon - self.lon_delta / 2

    @property
    def max_lon(self) -> float:
        return self.center_lon + self.lon_delta / 2

    def contains(self, latitude: float, longitude: float) -> bool:
        """Inclusive bounding-box test."""
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )

    def with_span(self, lat_delta: float, lon_delta: float) -> "Region":
        """Copy of this region with a new span around the same center."""
        return Region(
            center_lat=self.center_lat,
            center_lon=self.center_lon,
            lat_delta=lat_delta,
            lon_delta=lon_delta,
        )

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "center": {"latitude": self.center_lat, "longitude": self.center_lon},
            "span": {"lat_delta": self.lat_delta, "lon_delta": self.lon_delta},
        }
