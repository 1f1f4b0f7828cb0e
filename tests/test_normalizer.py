"""
Normalizer Tests
================

Tests for the adaptive normalization scale.
"""

import numpy as np
import pytest

from photo_density.grid import GridBuilder, Normalizer, normalize
from photo_density.models.grid import DensityGrid
from photo_density.models.location import PhotoLocation


def _grid_with_values(region, values, size=30):
    """Place values into distinct cells of a size x size grid."""
    cells = np.zeros((size, size), dtype=np.float64)
    flat = cells.reshape(-1)
    # Spread the values over the grid with a fixed stride
    positions = (np.arange(len(values)) * 7) % flat.size
    flat[positions] = values
    return DensityGrid(cells=cells, region=region, cell_size_degrees=region.lat_delta / size)


class TestNormalizer:
    """Tests for scale selection."""

    def test_empty_grid_scale_is_one(self):
        assert Normalizer().scale_for(DensityGrid.empty()) == 1.0

    def test_all_zero_grid_scale_is_one(self, region):
        far = [PhotoLocation(id="far", latitude=0.0, longitude=0.0)]
        grid = GridBuilder().build(far, region, 50)
        assert normalize(grid) == 1.0

    def test_single_cell_sparse(self, region):
        """One positive cell: max(v * 3, v * 0.25) = 3v."""
        grid = _grid_with_values(region, [2.0])
        assert Normalizer().scale_for(grid) == pytest.approx(6.0)

    def test_sparse_uses_max_term(self, region):
        """A dominant peak lifts the scale above 3x median."""
        values = [0.1] * 9 + [100.0]
        grid = _grid_with_values(region, values)
        stats = Normalizer().percentile_stats(grid)
        assert not stats.dense
        assert stats.median == pytest.approx(0.1)
        assert stats.scale == pytest.approx(25.0)

    def test_sparse_uses_median_term(self, region):
        values = [1.0, 2.0, 3.0, 4.0]
        grid = _grid_with_values(region, values)
        # sorted [1, 2, 3, 4], median = positive[2] = 3
        assert Normalizer().scale_for(grid) == pytest.approx(9.0)

    def test_threshold_is_exclusive(self, region):
        """Exactly 100 positive cells still count as sparse."""
        values = np.arange(1, 101, dtype=np.float64)
        stats = Normalizer().percentile_stats(_grid_with_values(region, values))
        assert stats.positive_count == 100
        assert not stats.dense
        assert stats.scale == pytest.approx(max(51.0 * 3, 100.0 * 0.25))

    def test_dense_uses_percentile(self, region):
        """More than 100 positive cells: value at rank floor(0.9 * n)."""
        values = np.arange(1, 201, dtype=np.float64)
        rng = np.random.default_rng(1)
        rng.shuffle(values)
        stats = Normalizer().percentile_stats(_grid_with_values(region, values))
        assert stats.dense
        assert stats.positive_count == 200
        # sorted[180] = 181
        assert stats.scale == pytest.approx(181.0)
        assert stats.raw_max == pytest.approx(200.0)

    def test_scale_positive_for_built_grid(self, region, scattered_points):
        grid = GridBuilder().build(scattered_points, region, 50)
        scale = Normalizer().scale_for(grid)
        assert scale > 0
        assert scale <= grid.max_value

    def test_custom_constants(self, region):
        values = np.arange(1, 21, dtype=np.float64)
        normalizer = Normalizer(dense_threshold=10, dense_percentile=0.5)
        # n = 20 > 10, rank 10 -> 11
        assert normalizer.scale_for(_grid_with_values(region, values)) == pytest.approx(11.0)

    def test_invalid_constants(self):
        with pytest.raises(ValueError):
            Normalizer(dense_percentile=0)
        with pytest.raises(ValueError):
            Normalizer(sparse_median_factor=-1)

    def test_stats_to_dict(self, region):
        stats = Normalizer().percentile_stats(_grid_with_values(region, [2.0]))
        data = stats.to_dict()
        assert data["positive_count"] == 1
        assert data["scale"] == pytest.approx(6.0)
