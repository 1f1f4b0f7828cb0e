"""
Color Mapping Tests
===================

Tests for the density gradient.
"""

import numpy as np
import pytest

from photo_density.rendering.colormap import (
    COLOR_STOPS,
    color_for,
    colorize,
    legend_stops,
    validate_stops,
)


class TestColorFor:
    """Tests for scalar color lookup."""

    def test_endpoints_are_exact(self):
        assert color_for(0.0) == COLOR_STOPS[0]
        assert color_for(1.0) == COLOR_STOPS[-1]

    def test_out_of_range_is_clamped(self):
        assert color_for(-3.0) == COLOR_STOPS[0]
        assert color_for(42.0) == COLOR_STOPS[-1]
        assert color_for(float("inf")) == COLOR_STOPS[-1]

    def test_nan_maps_to_zero(self):
        assert color_for(float("nan")) == COLOR_STOPS[0]

    def test_interior_stops(self):
        n = len(COLOR_STOPS)
        for i, stop in enumerate(COLOR_STOPS):
            assert color_for(i / (n - 1)) == pytest.approx(stop)

    def test_linear_between_stops(self):
        """Halfway between the first two stops is their average."""
        n = len(COLOR_STOPS)
        expected = tuple((a + b) / 2 for a, b in zip(COLOR_STOPS[0], COLOR_STOPS[1]))
        assert color_for(0.5 / (n - 1)) == pytest.approx(expected)

    def test_alpha_is_monotone(self):
        alphas = [color_for(d)[3] for d in np.linspace(0.0, 1.0, 1001)]
        assert all(b >= a for a, b in zip(alphas, alphas[1:]))
        assert alphas[0] == 0.0

    def test_components_in_unit_range(self):
        for d in np.linspace(-0.5, 1.5, 301):
            assert all(-1e-12 <= c <= 1.0 + 1e-12 for c in color_for(d))

    def test_deterministic(self):
        assert color_for(0.3141) == color_for(0.3141)


class TestColorize:
    """Tests for the vectorized gradient."""

    def test_matches_scalar(self):
        values = np.array([-1.0, 0.0, 0.05, 0.13, 0.5, 0.77, 0.999, 1.0, 2.0, np.nan])
        colors = colorize(values)
        assert colors.shape == (10, 4)
        for value, color in zip(values, colors):
            assert tuple(color) == color_for(value)

    def test_preserves_shape(self):
        assert colorize(np.zeros((3, 5))).shape == (3, 5, 4)


class TestStopTable:
    """Tests for stop table validation."""

    def test_default_table_is_valid(self):
        table = validate_stops(COLOR_STOPS)
        assert table.shape == (8, 4)
        assert not table.flags.writeable

    @pytest.mark.parametrize(
        "stops",
        [
            [(0.0, 0.0, 0.0, 0.0)],
            [(0.0, 0.0, 0.0), (1.0, 1.0, 1.0)],
            [(0.0, 0.0, 0.0, 0.0), (1.0, 1.0, 1.0, 2.0)],
        ],
    )
    def test_malformed_tables_rejected(self, stops):
        with pytest.raises(ValueError):
            validate_stops(stops)


class TestLegend:
    """Tests for legend export."""

    def test_legend_stops(self):
        stops = legend_stops()
        assert len(stops) == len(COLOR_STOPS)
        assert stops[0]["position"] == 0.0
        assert stops[-1]["position"] == 1.0
        assert stops[-1]["r"] == 1.0
        assert stops[0]["a"] == 0.0
