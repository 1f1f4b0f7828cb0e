"""
Sources Module
==============

Photo location acquisition boundary.

Components:
    - load_locations: JSON/CSV export loader
    - LocationStore: Versioned in-memory snapshot
"""

from photo_density.sources.loader import LocationRecord, load_locations, parse_records
from photo_density.sources.store import LocationStore

__all__ = [
    "LocationRecord",
    "load_locations",
    "parse_records",
    "LocationStore",
]
