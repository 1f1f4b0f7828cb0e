"""
Location Loading
================

Loads photo location snapshots from exported files.

Supported Formats:
    - JSON: a list of records, or {"locations": [...]}
    - CSV:  header row with id, latitude, longitude[, timestamp]

Record Schema:
    {
        "id": "IMG_0042",
        "latitude": 45.4642,
        "longitude": 9.19,
        "timestamp": "2024-06-01T12:30:00"   (optional)
    }

Records without coordinates (photos with no GPS data) are skipped, as
are records that fail validation. Skips are logged, never raised.
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from photo_density.models.location import PhotoLocation


logger = logging.getLogger(__name__)


class LocationRecord(BaseModel):
    """
    One exported photo record.

    Attributes:
        id: Photo identifier
        latitude: Latitude in degrees, None when the photo has no GPS data
        longitude: Longitude in degrees, None when the photo has no GPS data
        timestamp: Optional capture time
    """

    id: str = Field(..., min_length=1, description="Photo identifier")
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    timestamp: Optional[datetime] = Field(default=None, description="Capture time")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Numeric ids are accepted and stored as text."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("latitude", "longitude", "timestamp", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """CSV exports write missing values as empty strings."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_location(self) -> PhotoLocation:
        return PhotoLocation(
            id=self.id,
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.timestamp,
        )


def parse_records(
    raw_records: Iterable[Any],
    progress_batch_size: int = 500,
) -> List[PhotoLocation]:
    """
    Validate raw records into PhotoLocations.

    Args:
        raw_records: Iterable of dicts
        progress_batch_size: Log progress every N records

    Returns:
        Locations for all valid records that carry coordinates
    """
    locations: List[PhotoLocation] = []
    processed = 0
    invalid = 0

    for raw in raw_records:
        processed += 1
        try:
            record = LocationRecord.model_validate(raw)
        except ValidationError as e:
            invalid += 1
            logger.warning(f"Skipping invalid record #{processed}: {e.error_count()} error(s)")
            continue

        if record.has_location:
            locations.append(record.to_location())

        if progress_batch_size > 0 and processed % progress_batch_size == 0:
            logger.info(
                f"Processed {processed} records, {len(locations)} with location"
            )

    logger.info(
        f"Loaded {len(locations)} locations from {processed} records "
        f"({invalid} invalid)"
    )
    return locations


def load_locations(path: str, progress_batch_size: int = 500) -> List[PhotoLocation]:
    """
    Load photo locations from a JSON or CSV export.

    Args:
        path: File path (.json or .csv)
        progress_batch_size: Log progress every N records

    Returns:
        List of PhotoLocation

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the format is unsupported or the JSON is malformed
    """
    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Locations file not found: {path}")

    logger.info(f"Loading locations from: {path}")
    suffix = file_path.suffix.lower()

    if suffix == ".json":
        with open(file_path, "r") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid locations JSON in {path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("locations", [])
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of location records in {path}")

        return parse_records(data, progress_batch_size)

    if suffix == ".csv":
        with open(file_path, "r", newline="") as f:
            return parse_records(csv.DictReader(f), progress_batch_size)

    raise ValueError(f"Unsupported locations file format: {suffix or '(none)'}")
