"""
Heatmap Image Synthesizer
=========================

Rasterizes a density grid into an RGBA overlay image.

Pipeline:
    1. Clamp the requested pixel size to the configured maximum
    2. For every positive cell, composite a filled antialiased disc
       (an ellipse when cells are not square) centered on the cell.
       Discs are oversized so neighbors overlap and no cell edges
       survive into the final image. One disc stamp is drawn per
       render and composited for all cells with array operations.
    3. Blur the whole canvas with a separable Gaussian whose sigma is
       proportional to the cell size in pixels
    4. Convert the premultiplied float canvas to straight-alpha RGBA8

Disc Geometry:
    semi_axis = cell_px * (0.5 + disc_inset) + disc_padding_px

Orientation:
    Grid row 0 is the southern edge and is drawn at the BOTTOM of the
    image; column 0 (western edge) is drawn on the left.

Failure Policy:
    - Empty grid                -> None (no image, not a blank one)
    - Allocation/raster failure -> None
    - Blur failure              -> unblurred disc image

Rendered images are read-only arrays. Identical (grid content, scale,
size) requests are served from a small LRU cache.
"""

import logging
import math
import threading
import time
from collections import OrderedDict
from typing import Optional, Tuple

import cv2
import numpy as np

from photo_density.models.grid import DensityGrid
from photo_density.rendering.colormap import colorize


logger = logging.getLogger(__name__)

# Fixed-point bits used for sub-pixel disc placement
_SHIFT_BITS = 4
_SHIFT_SCALE = 1 << _SHIFT_BITS

CacheKey = Tuple[str, float, int, int]


def _clamp_dimension(value: float, limit: int) -> int:
    if value is None or math.isnan(value):
        return 1
    return int(max(1, min(value, limit)))


class HeatmapRenderer:
    """
    Density grid to RGBA image renderer.

    Attributes:
        max_width: Largest output width in pixels
        max_height: Largest output height in pixels
        disc_inset: Extra disc radius as a fraction of the cell size
        disc_padding_px: Extra disc radius in pixels
        blur_factor: Blur sigma as a multiple of the larger cell side
        cache_size: Number of rendered images kept (0 disables caching)

    Example:
        renderer = HeatmapRenderer()
        image = renderer.render(grid, scale, (1024, 768))
        if image is not None:
            png = encode_png(image)
    """

    def __init__(
        self,
        max_width: int = 2048,
        max_height: int = 2048,
        disc_inset: float = 0.5,
        disc_padding_px: float = 1.0,
        blur_factor: float = 1.5,
        cache_size: int = 4,
    ) -> None:
        if max_width < 1 or max_height < 1:
            raise ValueError("maximum image size must be at least 1x1")
        if disc_inset < 0 or disc_padding_px < 0:
            raise ValueError("disc_inset and disc_padding_px must be non-negative")
        if blur_factor < 0:
            raise ValueError("blur_factor must be non-negative")
        if cache_size < 0:
            raise ValueError("cache_size must be non-negative")

        self.max_width = max_width
        self.max_height = max_height
        self.disc_inset = disc_inset
        self.disc_padding_px = disc_padding_px
        self.blur_factor = blur_factor
        self.cache_size = cache_size

        self._cache: "OrderedDict[CacheKey, np.ndarray]" = OrderedDict()
        self._cache_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        logger.info(
            f"HeatmapRenderer initialized: max={max_width}x{max_height}, "
            f"blur_factor={blur_factor}, cache_size={cache_size}"
        )

    def clamp_size(self, pixel_size: Tuple[float, float]) -> Tuple[int, int]:
        """Clamp a requested (width, height) into [1, max] per axis."""
        width, height = pixel_size
        return (
            _clamp_dimension(width, self.max_width),
            _clamp_dimension(height, self.max_height),
        )

    def render(
        self,
        grid: DensityGrid,
        scale: float,
        pixel_size: Tuple[float, float],
    ) -> Optional[np.ndarray]:
        """
        Render a density grid.

        Args:
            grid: Density grid to draw
            scale: Normalization divisor (must be positive and finite)
            pixel_size: Requested (width, height) in pixels

        Returns:
            Read-only uint8 array (height, width, 4) in RGBA order,
            or None when there is nothing to draw or rendering failed

        Raises:
            ValueError: If scale is not a positive finite number
        """
        if grid.is_empty:
            return None
        if not math.isfinite(scale) or scale <= 0:
            raise ValueError(f"scale must be positive and finite, got {scale}")

        width, height = self.clamp_size(pixel_size)
        key: CacheKey = (grid.fingerprint, float(scale), width, height)

        cached = self._cache_get(key)
        if cached is not None:
            return cached

        start_time = time.time()
        sigma = self.blur_factor * max(width, height) / grid.size
        try:
            canvas = self._rasterize(grid, scale, width, height)
            canvas = self._smooth(canvas, sigma)
            image = self._to_rgba8(canvas)
            image.flags.writeable = False
        except (MemoryError, cv2.error) as e:
            logger.warning(
                f"Rendering failed for grid v{grid.version} at "
                f"{width}x{height}: {e}"
            )
            return None

        self._cache_put(key, image)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Rendered grid v{grid.version} at {width}x{height} in {elapsed_ms:.1f}ms"
        )
        if elapsed_ms > 500:
            logger.warning(f"Heatmap render took {elapsed_ms:.1f}ms (>500ms threshold)")

        return image

    def _rasterize(
        self,
        grid: DensityGrid,
        scale: float,
        width: int,
        height: int,
    ) -> np.ndarray:
        """
        Composite one disc per positive cell into a premultiplied canvas.

        The canvas is first drawn on a work raster where every cell is a
        whole block of pixels, so all discs share one coverage stamp. The
        stamp is cut into per-neighbor tiles and each tile is composited
        for every cell at once. Neighbor offsets run west to east, then
        south to north, which keeps each pixel's source-over order the
        same as visiting cells column by column. The work raster is then
        area-resampled to the output size.
        """
        n = grid.size
        cell_w = width / n
        cell_h = height / n
        block_w = max(1, math.ceil(cell_w))
        block_h = max(1, math.ceil(cell_h))

        # Disc radii measured in work pixels
        radius_x = (cell_w * (0.5 + self.disc_inset) + self.disc_padding_px) * block_w / cell_w
        radius_y = (cell_h * (0.5 + self.disc_inset) + self.disc_padding_px) * block_h / cell_h
        reach_x = int(math.ceil(radius_x / block_w)) + 1
        reach_y = int(math.ceil(radius_y / block_h)) + 1

        canvas = np.zeros((n * block_h, n * block_w, 4), dtype=np.float32)

        # Image rows run north to south
        values = grid.cells[::-1]
        colors = colorize(values / scale)
        colors[values <= 0] = 0.0

        # Premultiplied source per cell, padded so shifted views stay in range
        source = np.zeros((n + 2 * reach_y, n + 2 * reach_x, 4), dtype=np.float32)
        source[reach_y:reach_y + n, reach_x:reach_x + n, :3] = colors[..., :3] * colors[..., 3:]
        source[reach_y:reach_y + n, reach_x:reach_x + n, 3] = colors[..., 3]
        if not source[..., 3].any():
            return self._resample(canvas, width, height)

        stamp = self._disc_coverage(
            (reach_x + 0.5) * block_w,
            (reach_y + 0.5) * block_h,
            radius_x,
            radius_y,
            ((2 * reach_y + 1) * block_h, (2 * reach_x + 1) * block_w),
        )
        blocks = canvas.reshape(n, block_h, n, block_w, 4)

        for dx in range(-reach_x, reach_x + 1):
            for dy in range(reach_y, -reach_y - 1, -1):
                ty = (reach_y - dy) * block_h
                tx = (reach_x - dx) * block_w
                tile = stamp[ty:ty + block_h, tx:tx + block_w]
                if not tile.any():
                    continue

                shifted = source[reach_y + dy:reach_y + dy + n, reach_x + dx:reach_x + dx + n]
                if not shifted[..., 3].any():
                    continue

                coverage = tile[None, :, None, :, None]
                alpha = coverage[..., 0] * shifted[:, None, :, None, 3]
                blocks *= (1.0 - alpha)[..., None]
                blocks += coverage * shifted[:, None, :, None, :]

        return self._resample(canvas, width, height)

    @staticmethod
    def _resample(canvas: np.ndarray, width: int, height: int) -> np.ndarray:
        if canvas.shape[0] == height and canvas.shape[1] == width:
            return canvas
        return cv2.resize(canvas, (width, height), interpolation=cv2.INTER_AREA)

    @staticmethod
    def _disc_coverage(
        center_x: float,
        center_y: float,
        radius_x: float,
        radius_y: float,
        shape: Tuple[int, int],
    ) -> np.ndarray:
        """
        Antialiased filled ellipse coverage in [0, 1].

        Coordinates are continuous (pixel i spans [i, i + 1]).
        """
        mask = np.zeros(shape, dtype=np.uint8)
        cv2.ellipse(
            mask,
            (
                int(round((center_x - 0.5) * _SHIFT_SCALE)),
                int(round((center_y - 0.5) * _SHIFT_SCALE)),
            ),
            (
                int(round(radius_x * _SHIFT_SCALE)),
                int(round(radius_y * _SHIFT_SCALE)),
            ),
            0,
            0,
            360,
            255,
            thickness=-1,
            lineType=cv2.LINE_AA,
            shift=_SHIFT_BITS,
        )
        return mask.astype(np.float32) / 255.0

    def _smooth(self, canvas: np.ndarray, sigma: float) -> np.ndarray:
        """
        Separable Gaussian blur of the premultiplied canvas.

        Returns the input unchanged if blurring fails.
        """
        if sigma <= 0:
            return canvas
        try:
            return cv2.GaussianBlur(
                canvas,
                (0, 0),
                sigmaX=sigma,
                sigmaY=sigma,
                borderType=cv2.BORDER_CONSTANT,
            )
        except Exception as e:
            logger.warning(f"Blur failed (sigma={sigma:.2f}), returning unblurred image: {e}")
            return canvas

    @staticmethod
    def _to_rgba8(canvas: np.ndarray) -> np.ndarray:
        """Premultiplied float canvas -> straight-alpha uint8 RGBA."""
        alpha = np.clip(canvas[..., 3], 0.0, 1.0)
        rgb = np.zeros_like(canvas[..., :3])
        visible = alpha > 1e-6
        rgb[visible] = canvas[..., :3][visible] / alpha[visible][:, None]

        out = np.empty(canvas.shape, dtype=np.uint8)
        out[..., :3] = np.rint(np.clip(rgb, 0.0, 1.0) * 255.0)
        out[..., 3] = np.rint(alpha * 255.0)
        return out

    # =========================================================================
    # Cache
    # =========================================================================

    def _cache_get(self, key: CacheKey) -> Optional[np.ndarray]:
        if self.cache_size == 0:
            return None
        with self._cache_lock:
            image = self._cache.get(key)
            if image is None:
                self._misses += 1
                return None
            self._cache.move_to_end(key)
            self._hits += 1
            return image

    def _cache_put(self, key: CacheKey, image: np.ndarray) -> None:
        if self.cache_size == 0:
            return
        with self._cache_lock:
            self._cache[key] = image
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def cache_info(self) -> dict:
        """Cache metrics for observability."""
        with self._cache_lock:
            return {
                "size": len(self._cache),
                "capacity": self.cache_size,
                "hits": self._hits,
                "misses": self._misses,
            }
