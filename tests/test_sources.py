"""
Source Tests
============

Tests for location loading and the versioned store.
"""

import json
from datetime import datetime

import pytest

from photo_density.models.location import PhotoLocation
from photo_density.sources import LocationRecord, LocationStore, load_locations, parse_records


class TestLocationRecord:
    """Tests for record validation."""

    def test_valid_record(self):
        record = LocationRecord.model_validate({"id": "x", "latitude": "45.1", "longitude": 9})
        assert record.has_location
        assert record.to_location() == PhotoLocation(id="x", latitude=45.1, longitude=9.0)

    def test_numeric_id(self):
        assert LocationRecord.model_validate({"id": 42}).id == "42"

    def test_blank_coordinates(self):
        record = LocationRecord.model_validate({"id": "x", "latitude": " ", "longitude": ""})
        assert not record.has_location

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            LocationRecord.model_validate({"id": "x", "latitude": 91, "longitude": 0})


class TestParseRecords:
    """Tests for bulk parsing."""

    def test_skips_records_without_location(self, sample_records):
        locations = parse_records(sample_records)
        assert [p.id for p in locations] == ["IMG_0001", "IMG_0002"]
        assert locations[0].timestamp == datetime(2024, 6, 1, 12, 30)

    def test_skips_invalid_records(self, sample_records):
        records = sample_records + [{"latitude": 1.0, "longitude": 2.0}, {"id": "bad", "latitude": 400}]
        assert len(parse_records(records, progress_batch_size=1)) == 2


class TestLoadLocations:
    """Tests for file loading."""

    def test_load_json_list(self, tmp_path, sample_records):
        path = tmp_path / "photos.json"
        path.write_text(json.dumps(sample_records))
        assert len(load_locations(str(path))) == 2

    def test_load_json_wrapper(self, tmp_path, sample_records):
        path = tmp_path / "photos.json"
        path.write_text(json.dumps({"locations": sample_records}))
        assert len(load_locations(str(path))) == 2

    def test_load_csv(self, tmp_path):
        path = tmp_path / "photos.csv"
        path.write_text(
            "id,latitude,longitude,timestamp\n"
            "a,45.1,9.1,2024-01-01T00:00:00\n"
            "b,,,\n"
            "c,45.2,9.2,\n"
        )
        locations = load_locations(str(path))
        assert [p.id for p in locations] == ["a", "c"]
        assert locations[1].timestamp is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_locations(str(tmp_path / "missing.json"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "photos.txt"
        path.write_text("x")
        with pytest.raises(ValueError):
            load_locations(str(path))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "photos.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_locations(str(path))

    def test_json_wrong_shape(self, tmp_path):
        path = tmp_path / "photos.json"
        path.write_text(json.dumps({"locations": "nope"}))
        with pytest.raises(ValueError):
            load_locations(str(path))


class TestLocationStore:
    """Tests for versioned snapshots."""

    def test_versions_increase(self, clustered_points):
        store = LocationStore()
        assert store.snapshot() == (0, ())
        assert store.replace(clustered_points) == 1
        assert store.replace([]) == 2
        assert store.count == 0

    def test_snapshot_is_immutable_copy(self, clustered_points):
        store = LocationStore()
        source = list(clustered_points)
        store.replace(source)
        source.clear()
        version, points = store.snapshot()
        assert version == 1
        assert len(points) == 3
        assert isinstance(points, tuple)

    def test_date_range(self, sample_records):
        store = LocationStore()
        store.replace(parse_records(sample_records))
        assert store.date_range() == (datetime(2024, 6, 1, 12, 30), datetime(2024, 7, 15, 8, 0))

    def test_date_range_without_timestamps(self, clustered_points):
        store = LocationStore()
        store.replace(clustered_points)
        assert store.date_range() is None
