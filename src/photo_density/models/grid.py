"""
Density Grid Models
===================

Immutable value types produced by the grid pipeline.

    DensityGrid  - square matrix of accumulated Gaussian weights
    HeatmapData  - a DensityGrid paired with its normalization scale

Every recomputation produces a new DensityGrid. The cell array is made
read-only on construction, so a grid can be handed to the renderer (or
another thread) without copying.

Grid Orientation:
    cells[row, col] where row indexes latitude from the SOUTHERN edge
    of the region and col indexes longitude from the WESTERN edge.
"""

import hashlib
import itertools
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from photo_density.models.location import Region


_version_counter = itertools.count(1)


def _next_version() -> int:
    return next(_version_counter)


@dataclass(frozen=True, eq=False)
class DensityGrid:
    """
    Fixed-resolution density grid over a viewport region.

    Attributes:
        cells: (size, size) float64 array of non-negative densities
        region: Region the grid covers (None for the empty sentinel)
        cell_size_degrees: Latitude span of one cell
        version: Process-wide monotonically increasing id
        fingerprint: Content hash of cells and region (cache key)
    """

    cells: np.ndarray
    region: Optional[Region]
    cell_size_degrees: float
    version: int = field(default_factory=_next_version)
    fingerprint: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate invariants and freeze the cell buffer."""
        cells = np.array(self.cells, dtype=np.float64, order="C")

        if cells.ndim != 2 or cells.shape[0] != cells.shape[1]:
            raise ValueError(f"density grid must be square, got shape {cells.shape}")
        if cells.size and (not np.all(np.isfinite(cells)) or cells.min() < 0):
            raise ValueError("density grid cells must be finite and non-negative")
        if cells.size and self.region is None:
            raise ValueError("non-empty density grid requires a region")

        cells.flags.writeable = False
        object.__setattr__(self, "cells", cells)
        object.__setattr__(self, "fingerprint", self._compute_fingerprint())

    @classmethod
    def empty(cls) -> "DensityGrid":
        """Canonical "no data" sentinel: a 0x0 grid without a region."""
        return cls(
            cells=np.zeros((0, 0), dtype=np.float64),
            region=None,
            cell_size_degrees=0.0,
        )

    def _compute_fingerprint(self) -> str:
        digest = hashlib.blake2b(digest_size=16)
        digest.update(str(self.cells.shape).encode())
        digest.update(self.cells.tobytes())
        if self.region is not None:
            digest.update(repr(self.region).encode())
        return digest.hexdigest()

    @property
    def size(self) -> int:
        """Number of cells along each axis."""
        return int(self.cells.shape[0])

    @property
    def is_empty(self) -> bool:
        """True for the zero-sized sentinel grid."""
        return self.cells.size == 0

    @property
    def positive_count(self) -> int:
        return int(np.count_nonzero(self.cells > 0))

    @property
    def max_value(self) -> float:
        return float(self.cells.max()) if self.cells.size else 0.0

    def __repr__(self) -> str:
        return (
            f"DensityGrid(size={self.size}, version={self.version}, "
            f"positive={self.positive_count}, max={self.max_value:.3f})"
        )


@dataclass(frozen=True, eq=False)
class HeatmapData:
    """
    Density grid plus the normalization scale used to color it.

    Attributes:
        grid: The density grid (possibly the empty sentinel)
        scale: Divisor mapping cell densities to [0, 1]
    """

    grid: DensityGrid
    scale: float

    @property
    def has_data(self) -> bool:
        return not self.grid.is_empty

    @classmethod
    def empty(cls) -> "HeatmapData":
        return cls(grid=DensityGrid.empty(), scale=1.0)

    def to_dict(self) -> dict:
        """Metadata export (cells excluded)."""
        return {
            "has_data": self.has_data,
            "version": self.grid.version,
            "grid_size": self.grid.size,
            "scale": round(self.scale, 6),
            "max_density": round(self.grid.max_value, 6),
            "positive_cells": self.grid.positive_count,
            "cell_size_degrees": self.grid.cell_size_degrees,
            "region": self.grid.region.to_dict() if self.grid.region else None,
        }
