"""
Test Configuration
==================

Pytest fixtures and test configuration for PhotoDensity.
"""

import numpy as np
import pytest


@pytest.fixture
def region():
    """Provide a 1°x1° viewport centered at (45, 9)."""
    from photo_density.models.location import Region

    return Region(center_lat=45.0, center_lon=9.0, lat_delta=1.0, lon_delta=1.0)


@pytest.fixture
def clustered_points():
    """Provide 3 locations that fall into the same grid cell of `region`."""
    from photo_density.models.location import PhotoLocation

    return [
        PhotoLocation(id="a", latitude=45.0011, longitude=9.0011),
        PhotoLocation(id="b", latitude=45.0012, longitude=9.0013),
        PhotoLocation(id="c", latitude=45.0014, longitude=9.0012),
    ]


@pytest.fixture
def scattered_points():
    """Provide 200 deterministic pseudo-random locations inside `region`."""
    from photo_density.models.location import PhotoLocation

    rng = np.random.default_rng(7)
    lats = rng.uniform(44.6, 45.4, 200)
    lons = rng.uniform(8.6, 9.4, 200)
    return [
        PhotoLocation(id=f"p{i}", latitude=float(lat), longitude=float(lon))
        for i, (lat, lon) in enumerate(zip(lats, lons))
    ]


@pytest.fixture
def sample_records():
    """Provide raw export records, one of them without GPS data."""
    return [
        {"id": "IMG_0001", "latitude": 45.4642, "longitude": 9.19, "timestamp": "2024-06-01T12:30:00"},
        {"id": "IMG_0002", "latitude": 45.4700, "longitude": 9.20, "timestamp": "2024-07-15T08:00:00"},
        {"id": "IMG_0003"},
    ]
