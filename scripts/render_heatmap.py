#!/usr/bin/env python3
"""
Heatmap Render Script
=====================

Standalone script that renders a photo density heatmap to a PNG file.

This script:
    1. Loads photo locations from a JSON or CSV export
    2. Uses the given viewport, or fits one around all locations
    3. Builds and normalizes the density grid
    4. Renders the overlay and writes it as PNG

Usage:
    python scripts/render_heatmap.py photos.json -o heatmap.png
    python scripts/render_heatmap.py photos.csv --center 45.46 9.19 --span 1 1 --spread 30
"""

import argparse
import logging
import os
import sys
import time
from typing import Optional

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from photo_density.geometry import fit_to_show
from photo_density.grid import GridBuilder, Normalizer
from photo_density.models.location import Region
from photo_density.rendering import HeatmapRenderer, encode_png
from photo_density.sources import load_locations


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def run(
    points_path: str,
    output_path: str,
    region: Optional[Region] = None,
    spread: float = 50.0,
    width: int = 1024,
    height: int = 1024,
    grid_size: int = 150,
) -> bool:
    """
    Render one heatmap.

    Returns:
        True if an image was written
    """
    start_time = time.time()
    try:
        locations = load_locations(points_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load locations: {e}")
        return False

    if region is None:
        region = fit_to_show(locations)
        if region is None:
            logger.error("No locations with coordinates, nothing to render")
            return False

    logger.info("=" * 60)
    logger.info(f"Locations: {len(locations)}")
    logger.info(f"Region: {region.to_dict()}")
    logger.info(f"Spread: {spread}  Grid: {grid_size}x{grid_size}  Image: {width}x{height}")
    logger.info("=" * 60)

    builder = GridBuilder(grid_size=grid_size)
    grid = builder.build(locations, region, spread)
    if grid.is_empty:
        logger.error("Empty density grid, nothing to render")
        return False

    stats = Normalizer().percentile_stats(grid)
    logger.info(
        f"Positive cells: {stats.positive_count}  "
        f"dense={stats.dense}  scale={stats.scale:.4f}"
    )

    image = HeatmapRenderer(cache_size=0).render(grid, stats.scale, (width, height))
    if image is None:
        logger.error("Renderer returned no image")
        return False

    with open(output_path, "wb") as f:
        f.write(encode_png(image))

    logger.info(
        f"Wrote {image.shape[1]}x{image.shape[0]} heatmap to {output_path} "
        f"in {time.time() - start_time:.2f}s"
    )
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Render a photo density heatmap to PNG"
    )
    parser.add_argument("points", type=str, help="JSON or CSV location export")
    parser.add_argument(
        "-o", "--output",
        type=str,
        default="heatmap.png",
        help="Output PNG path (default: heatmap.png)",
    )
    parser.add_argument(
        "--center",
        type=float,
        nargs=2,
        metavar=("LAT", "LON"),
        help="Viewport center (default: fit to locations)",
    )
    parser.add_argument(
        "--span",
        type=float,
        nargs=2,
        metavar=("LAT_DELTA", "LON_DELTA"),
        default=(1.0, 1.0),
        help="Viewport span in degrees when --center is given (default: 1 1)",
    )
    parser.add_argument(
        "--spread",
        type=float,
        default=50.0,
        help="Spread control value, 10-100 (default: 50)",
    )
    parser.add_argument("--width", type=int, default=1024, help="Image width (default: 1024)")
    parser.add_argument("--height", type=int, default=1024, help="Image height (default: 1024)")
    parser.add_argument("--grid-size", type=int, default=150, help="Grid resolution (default: 150)")

    args = parser.parse_args()

    region = None
    if args.center:
        region = Region.from_values(args.center[0], args.center[1], args.span[0], args.span[1])
        if region is None:
            parser.error("viewport span must be positive")

    ok = run(
        points_path=args.points,
        output_path=args.output,
        region=region,
        spread=args.spread,
        width=args.width,
        height=args.height,
        grid_size=args.grid_size,
    )

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
