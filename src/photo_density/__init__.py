"""
PhotoDensity
============

Density heatmaps of geotagged photos for map overlays.

This package turns an unordered set of photo locations plus a viewport
region and a spread parameter into a normalized density grid, and
renders that grid as a smoothly shaded RGBA overlay.

Components:
    - models: Locations, regions and immutable density grids
    - grid: Gaussian-kernel grid builder and adaptive normalizer
    - rendering: Color gradient, disc rasterizer + blur, PNG encoding
    - worker: Debounced, cancellable background recomputation
    - geometry: Viewport region math (fit, zoom)
    - sources: Location export loading and versioned snapshots

Example:
    from photo_density.grid import GridBuilder, Normalizer
    from photo_density.rendering import HeatmapRenderer

    grid = GridBuilder().build(locations, region, spread=50)
    if not grid.is_empty:
        scale = Normalizer().scale_for(grid)
        image = HeatmapRenderer().render(grid, scale, (1024, 768))

    # The HTTP service is started via main.py
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
