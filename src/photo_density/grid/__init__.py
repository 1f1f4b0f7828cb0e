"""
Grid Module
===========

Density grid computation.

Components:
    - GridBuilder: Gaussian-kernel accumulation into a square grid
    - Normalizer: Adaptive percentile/median normalization scale
    - CancellationToken: Cooperative cancellation for background builds
"""

from photo_density.grid.cancellation import CancellationToken, ComputationCancelled
from photo_density.grid.builder import GridBuilder, build_grid
from photo_density.grid.normalizer import Normalizer, PercentileStats, normalize

__all__ = [
    "CancellationToken",
    "ComputationCancelled",
    "GridBuilder",
    "build_grid",
    "Normalizer",
    "PercentileStats",
    "normalize",
]
