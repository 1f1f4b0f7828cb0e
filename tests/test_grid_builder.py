"""
Grid Builder Tests
==================

Tests for Gaussian-kernel density accumulation.
"""

import math
import random

import numpy as np
import pytest

from photo_density.grid import CancellationToken, ComputationCancelled, GridBuilder, build_grid
from photo_density.models.location import PhotoLocation


def _cell_of(builder, point, region):
    counts = builder.cell_counts([point], region)
    rows, cols = np.nonzero(counts)
    return int(rows[0]), int(cols[0])


class TestSpreadConversion:
    """Tests for spread clamping and kernel radius."""

    def test_radius_for_default_spread(self):
        """Spread 50 maps to a 6-cell radius."""
        assert GridBuilder().radius_cells(50) == 6

    def test_radius_bounds(self):
        """Spread is clamped to [10, 100] before conversion."""
        builder = GridBuilder()
        assert builder.radius_cells(10) == 2
        assert builder.radius_cells(100) == 11
        assert builder.radius_cells(1) == 2
        assert builder.radius_cells(5000) == 11

    def test_non_finite_spread_uses_default(self):
        """NaN/inf spread fall back to the default spread."""
        builder = GridBuilder(default_spread=50)
        assert builder.clamp_spread(float("nan")) == 50
        assert builder.clamp_spread(float("inf")) == 50

    def test_radius_minimum_is_one(self):
        """Without a lower spread clamp the radius never drops below 1."""
        builder = GridBuilder(min_spread=0, default_spread=0)
        assert builder.radius_cells(0) == 1

    def test_invalid_constructor_arguments(self):
        """Contract violations are rejected."""
        with pytest.raises(ValueError):
            GridBuilder(grid_size=0)
        with pytest.raises(ValueError):
            GridBuilder(min_spread=50, max_spread=10)


class TestKernel:
    """Tests for the Gaussian kernel."""

    def test_kernel_shape_and_center(self):
        kernel = GridBuilder().gaussian_kernel(6)
        assert kernel.shape == (13, 13)
        assert kernel[6, 6] == 1.0

    def test_kernel_values(self):
        """weight = exp(-d² / 2σ²) with σ = r / 2.5."""
        kernel = GridBuilder().gaussian_kernel(5)
        sigma = 5 / 2.5
        expected = math.exp(-(3 * 3 + 4 * 4) / (2 * sigma * sigma))
        assert kernel[5 + 3, 5 + 4] == pytest.approx(expected)
        assert np.allclose(kernel, kernel.T)
        assert np.allclose(kernel, kernel[::-1, ::-1])


class TestBuild:
    """Tests for grid construction."""

    def test_empty_points_yield_sentinel(self, region):
        """An empty point list returns the canonical empty grid."""
        grid = GridBuilder().build([], region, 50)
        assert grid.is_empty
        assert grid.size == 0
        assert grid.region is None

    def test_missing_region_yields_sentinel(self, clustered_points):
        grid = GridBuilder().build(clustered_points, None, 50)
        assert grid.is_empty

    def test_points_outside_give_zero_grid(self, region):
        """Points outside the viewport yield a valid all-zero grid."""
        points = [PhotoLocation(id="far", latitude=10.0, longitude=10.0)]
        grid = GridBuilder().build(points, region, 50)
        assert not grid.is_empty
        assert grid.cells.shape == (150, 150)
        assert grid.max_value == 0.0

    def test_outside_points_do_not_affect_grid(self, region, scattered_points):
        """Adding points outside the bounding box leaves the grid unchanged."""
        outside = [
            PhotoLocation(id="n", latitude=45.6, longitude=9.0),
            PhotoLocation(id="s", latitude=44.4, longitude=9.0),
            PhotoLocation(id="e", latitude=45.0, longitude=9.6),
            PhotoLocation(id="w", latitude=45.0, longitude=8.4),
            PhotoLocation(id="sw", latitude=44.49, longitude=8.49),
        ]
        builder = GridBuilder()
        base = builder.build(scattered_points, region, 50)
        mixed = builder.build(scattered_points + outside, region, 50)
        assert np.array_equal(base.cells, mixed.cells)

    def test_point_order_does_not_matter(self, region, scattered_points):
        """Shuffling input order yields the same grid."""
        shuffled = list(scattered_points)
        random.Random(3).shuffle(shuffled)

        builder = GridBuilder()
        a = builder.build(scattered_points, region, 40)
        b = builder.build(shuffled, region, 40)
        assert np.allclose(a.cells, b.cells)

    def test_clustered_points_scenario(self, region, clustered_points):
        """3 points in one cell at spread 50 over a 1°x1° region."""
        builder = GridBuilder()
        grid = builder.build(clustered_points, region, 50)
        radius = builder.radius_cells(50)
        assert radius == 6

        row, col = _cell_of(builder, clustered_points[0], region)
        for p in clustered_points[1:]:
            assert _cell_of(builder, p, region) == (row, col)

        center = grid.cells[row, col]
        assert center == pytest.approx(3.0)

        for dr in range(-12, 13):
            for dc in range(-12, 13):
                if dr == 0 and dc == 0:
                    continue
                value = grid.cells[row + dr, col + dc]
                assert value < center
                if max(abs(dr), abs(dc)) > radius:
                    assert value == 0.0

        assert grid.positive_count == (2 * radius + 1) ** 2

    def test_accumulation_is_additive(self, region, clustered_points):
        """Density compounds across points."""
        builder = GridBuilder()
        one = builder.build(clustered_points[:1], region, 30)
        three = builder.build(clustered_points, region, 30)
        assert np.allclose(three.cells, one.cells * 3)

    def test_neighborhood_clipped_at_edges(self, region):
        """A point in the corner cell only touches cells inside the grid."""
        corner = PhotoLocation(id="corner", latitude=44.5001, longitude=8.5001)
        grid = GridBuilder().build([corner], region, 50)
        assert grid.cells[0, 0] == 1.0
        assert grid.positive_count == 7 * 7

    def test_row_zero_is_southern_edge(self, region):
        """Rows index latitude from the south, columns longitude from the west."""
        north_east = PhotoLocation(id="ne", latitude=45.499, longitude=9.499)
        grid = GridBuilder().build([north_east], region, 10)
        assert grid.cells[149, 149] == 1.0

    def test_non_finite_points_dropped(self, region, clustered_points):
        bad = [
            PhotoLocation(id="nan", latitude=float("nan"), longitude=9.0),
            PhotoLocation(id="inf", latitude=45.0, longitude=float("inf")),
        ]
        builder = GridBuilder()
        clean = builder.build(clustered_points, region, 50)
        mixed = builder.build(clustered_points + bad, region, 50)
        assert np.array_equal(clean.cells, mixed.cells)
        assert np.all(np.isfinite(mixed.cells))

    def test_grid_metadata(self, region, clustered_points):
        grid = GridBuilder(grid_size=100).build(clustered_points, region, 50)
        assert grid.size == 100
        assert grid.cell_size_degrees == pytest.approx(0.01)
        assert grid.region == region

    def test_grid_is_immutable(self, region, clustered_points):
        """Cells are read-only after construction."""
        grid = GridBuilder().build(clustered_points, region, 50)
        with pytest.raises(ValueError):
            grid.cells[0, 0] = 1.0

    def test_versions_increase(self, region, clustered_points):
        builder = GridBuilder()
        first = builder.build(clustered_points, region, 50)
        second = builder.build(clustered_points, region, 50)
        assert second.version > first.version
        assert second.fingerprint == first.fingerprint

    def test_cancelled_token_aborts(self, region, clustered_points):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ComputationCancelled):
            GridBuilder().build(clustered_points, region, 50, cancel_token=token)

    def test_build_grid_helper(self, region, clustered_points):
        grid = build_grid(clustered_points, region, 50)
        assert grid.size == 150
        assert grid.max_value == pytest.approx(3.0)
