"""
Location Store
==============

Holds the current immutable snapshot of photo locations.

Every replacement bumps a monotonically increasing version, which is
carried in recompute commands so results can be traced back to the
snapshot they were computed from.
"""

import logging
import threading
from datetime import datetime
from typing import Iterable, Optional, Tuple

from photo_density.models.location import PhotoLocation


logger = logging.getLogger(__name__)


class LocationStore:
    """
    Versioned snapshot holder for photo locations.

    Example:
        store = LocationStore()
        version = store.replace(load_locations("photos.json"))
        version, points = store.snapshot()
    """

    def __init__(self) -> None:
        self._points: Tuple[PhotoLocation, ...] = ()
        self._version: int = 0
        self._lock = threading.Lock()

    @property
    def version(self) -> int:
        return self._version

    @property
    def count(self) -> int:
        return len(self._points)

    def replace(self, points: Iterable[PhotoLocation]) -> int:
        """
        Replace the snapshot.

        Returns:
            The new snapshot version
        """
        snapshot = tuple(points)
        with self._lock:
            self._points = snapshot
            self._version += 1
            version = self._version

        logger.info(f"Location snapshot v{version}: {len(snapshot)} locations")
        return version

    def snapshot(self) -> Tuple[int, Tuple[PhotoLocation, ...]]:
        """Current (version, points) pair."""
        with self._lock:
            return self._version, self._points

    def date_range(self) -> Optional[Tuple[datetime, datetime]]:
        """
        Earliest and latest capture times in the snapshot.

        Returns:
            (earliest, latest), or None if no location has a timestamp
        """
        timestamps = [p.timestamp for p in self._points if p.timestamp is not None]
        if not timestamps:
            return None
        return min(timestamps), max(timestamps)
