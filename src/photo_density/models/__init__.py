"""
Data Models
===========

Value types for the PhotoDensity pipeline.

Models:
    Location:
        - PhotoLocation: Geotagged photo sample
        - Region: Viewport region (center + span)

    Grid:
        - DensityGrid: Immutable square density matrix
        - HeatmapData: Grid + normalization scale
"""

from photo_density.models.location import PhotoLocation, Region
from photo_density.models.grid import DensityGrid, HeatmapData

__all__ = [
    # Location
    "PhotoLocation",
    "Region",
    # Grid
    "DensityGrid",
    "HeatmapData",
]
