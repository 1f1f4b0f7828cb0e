"""
Adaptive Normalization
======================

Derives the divisor that maps raw cell densities to [0, 1] for
color mapping.

Normalizing by the true maximum makes sparse views look washed out:
a single stacked location dominates the scale and everything else
fades to transparent. Instead the scale adapts to how many cells
carry density:

    positive = sorted(cells > 0)
    n        = len(positive)

    n == 0           -> 1.0
    n >  threshold   -> positive[min(floor(0.90 * n), n - 1)]     (dense)
    n <= threshold   -> max(median * 3, max * 0.25)               (sparse)

    median = positive[n // 2]

Values above the scale are NOT clamped here. The color mapper clamps
to [0, 1].
"""

import logging
import math
from dataclasses import dataclass

import numpy as np

from photo_density.models.grid import DensityGrid


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PercentileStats:
    """
    Intermediate values of a normalization pass.

    Attributes:
        positive_count: Number of strictly positive cells
        percentile: Value at the dense-view percentile rank
        median: Value at rank n // 2
        raw_max: Largest cell value
        dense: Whether the dense-view rule applied
        scale: Resulting divisor
    """

    positive_count: int
    percentile: float
    median: float
    raw_max: float
    dense: bool
    scale: float

    def to_dict(self) -> dict:
        return {
            "positive_count": self.positive_count,
            "percentile": round(self.percentile, 6),
            "median": round(self.median, 6),
            "raw_max": round(self.raw_max, 6),
            "dense": self.dense,
            "scale": round(self.scale, 6),
        }


class Normalizer:
    """
    Adaptive normalization scale for density grids.

    Attributes:
        dense_threshold: Positive-cell count above which a view is dense
        dense_percentile: Percentile rank used for dense views
        sparse_median_factor: Median multiplier for sparse views
        sparse_max_factor: Max multiplier for sparse views
    """

    def __init__(
        self,
        dense_threshold: int = 100,
        dense_percentile: float = 0.90,
        sparse_median_factor: float = 3.0,
        sparse_max_factor: float = 0.25,
    ) -> None:
        if dense_threshold < 0:
            raise ValueError("dense_threshold must be non-negative")
        if not 0 < dense_percentile <= 1:
            raise ValueError("dense_percentile must be in (0, 1]")
        if sparse_median_factor <= 0 or sparse_max_factor <= 0:
            raise ValueError("sparse factors must be positive")

        self.dense_threshold = dense_threshold
        self.dense_percentile = dense_percentile
        self.sparse_median_factor = sparse_median_factor
        self.sparse_max_factor = sparse_max_factor

    def percentile_stats(self, grid: DensityGrid) -> PercentileStats:
        """Compute the scale together with its intermediate values."""
        positive = np.sort(grid.cells[grid.cells > 0], kind="stable")
        count = int(positive.size)

        if count == 0:
            return PercentileStats(
                positive_count=0,
                percentile=0.0,
                median=0.0,
                raw_max=0.0,
                dense=False,
                scale=1.0,
            )

        rank = min(int(math.floor(self.dense_percentile * count)), count - 1)
        percentile = float(positive[rank])
        median = float(positive[count // 2])
        raw_max = float(positive[-1])

        dense = count > self.dense_threshold
        if dense:
            scale = percentile
        else:
            scale = max(
                median * self.sparse_median_factor,
                raw_max * self.sparse_max_factor,
            )

        return PercentileStats(
            positive_count=count,
            percentile=percentile,
            median=median,
            raw_max=raw_max,
            dense=dense,
            scale=scale,
        )

    def scale_for(self, grid: DensityGrid) -> float:
        """
        Normalization divisor for a grid.

        Args:
            grid: Density grid (the empty sentinel yields 1.0)

        Returns:
            Strictly positive scale
        """
        stats = self.percentile_stats(grid)
        logger.debug(
            f"Normalization for grid v{grid.version}: "
            f"n={stats.positive_count}, dense={stats.dense}, scale={stats.scale:.4f}"
        )
        return stats.scale


def normalize(grid: DensityGrid) -> float:
    """Normalization scale with the default constants."""
    return Normalizer().scale_for(grid)
