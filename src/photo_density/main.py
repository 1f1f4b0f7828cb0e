"""
PhotoDensity Main Application
=============================

FastAPI entry point for the photo density heatmap service.

The service hosts the density pipeline for a map front end:
    - Holds the current photo location snapshot
    - Tracks the viewport region and spread control value
    - Recomputes the density grid in the background on every change
      (debounced, superseded computations are cancelled)
    - Renders the latest grid as a PNG overlay sized to the map view

Endpoints:
    GET  /              - Service information
    GET  /health        - Liveness probe
    GET  /ready         - Readiness probe (heatmap computed at least once)
    GET  /metrics       - Worker, cache and snapshot metrics
    PUT  /points        - Replace the photo location snapshot
    PUT  /viewport      - Set viewport region (and optionally spread)
    PUT  /spread        - Set spread control value
    POST /viewport/zoom - Zoom in / out / reset the viewport
    GET  /heatmap       - Metadata of the latest heatmap
    GET  /heatmap.png   - Rendered overlay (204 when there is nothing to draw)
    GET  /legend        - Color stop table for legend rendering
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Literal, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from photo_density.config import settings
from photo_density.geometry import fit_to_show, world_region, zoom_in, zoom_level, zoom_out
from photo_density.grid import GridBuilder, Normalizer
from photo_density.models.location import Region
from photo_density.rendering import HeatmapRenderer, encode_png, legend_stops
from photo_density.sources import LocationRecord, LocationStore, load_locations
from photo_density.worker import HeatmapPipeline, HeatmapWorker, RecomputeCommand


logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================

class PointsRequest(BaseModel):
    """Replacement location snapshot."""

    locations: List[LocationRecord] = Field(default_factory=list)


class ViewportRequest(BaseModel):
    """Viewport region pushed by the map on pan/zoom."""

    center_lat: float = Field(..., ge=-90, le=90)
    center_lon: float = Field(..., ge=-180, le=180)
    lat_delta: float = Field(..., gt=0)
    lon_delta: float = Field(..., gt=0)
    spread: Optional[float] = Field(default=None, description="Optional spread update")


class SpreadRequest(BaseModel):
    """Spread control value (clamped to the configured range)."""

    spread: float


class ZoomRequest(BaseModel):
    """Viewport zoom action."""

    action: Literal["in", "out", "reset"]


# =============================================================================
# Global State
# =============================================================================

_store: Optional[LocationStore] = None
_builder: Optional[GridBuilder] = None
_normalizer: Optional[Normalizer] = None
_renderer: Optional[HeatmapRenderer] = None
_worker: Optional[HeatmapWorker] = None

_region: Optional[Region] = None
_region_set_by_client: bool = False
_spread: float = settings.grid.default_spread
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_store() -> Optional[LocationStore]:
    return _store

def get_worker() -> Optional[HeatmapWorker]:
    return _worker

def get_renderer() -> Optional[HeatmapRenderer]:
    return _renderer

def get_region() -> Optional[Region]:
    return _region

def is_ready() -> bool:
    return _worker is not None and _worker.slot.latest is not None


# =============================================================================
# Recompute Triggers
# =============================================================================

def default_region() -> Region:
    """Initial viewport from configuration."""
    return Region(
        center_lat=settings.viewport.center_lat,
        center_lon=settings.viewport.center_lon,
        lat_delta=settings.viewport.lat_delta,
        lon_delta=settings.viewport.lon_delta,
    )


def request_recompute() -> Optional[int]:
    """Submit a recompute command for the current inputs."""
    if _store is None or _worker is None:
        logger.error("Recompute requested before pipeline initialization")
        return None

    version, points = _store.snapshot()
    return _worker.submit(
        RecomputeCommand(
            snapshot_version=version,
            points=points,
            region=_region,
            spread=_spread,
        )
    )


def replace_points(locations) -> int:
    """Swap the location snapshot and fit the viewport if the client has not set one."""
    global _region

    version = _store.replace(locations)
    if not _region_set_by_client:
        _, points = _store.snapshot()
        fitted = fit_to_show(points, padding=settings.viewport.fit_padding)
        if fitted is not None:
            _region = fitted
    request_recompute()
    return version


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _store, _builder, _normalizer, _renderer, _worker
    global _region, _region_set_by_client, _spread, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    _store = LocationStore()
    _builder = GridBuilder(
        grid_size=settings.grid.size,
        spread_per_cell=settings.grid.spread_per_cell,
        sigma_divisor=settings.grid.sigma_divisor,
        min_spread=settings.grid.min_spread,
        max_spread=settings.grid.max_spread,
        default_spread=settings.grid.default_spread,
    )
    _normalizer = Normalizer(
        dense_threshold=settings.normalization.dense_threshold,
        dense_percentile=settings.normalization.dense_percentile,
        sparse_median_factor=settings.normalization.sparse_median_factor,
        sparse_max_factor=settings.normalization.sparse_max_factor,
    )
    _renderer = HeatmapRenderer(
        max_width=settings.render.max_width,
        max_height=settings.render.max_height,
        disc_inset=settings.render.disc_inset,
        disc_padding_px=settings.render.disc_padding_px,
        blur_factor=settings.render.blur_factor,
        cache_size=settings.render.cache_size,
    )
    _worker = HeatmapWorker(
        HeatmapPipeline(_builder, _normalizer),
        debounce_ms=settings.worker.debounce_ms,
    )

    _region = default_region()
    _region_set_by_client = False
    _spread = _builder.clamp_spread(settings.grid.default_spread)

    if settings.source.points_path:
        try:
            locations = load_locations(
                settings.source.points_path,
                progress_batch_size=settings.source.progress_batch_size,
            )
        except (FileNotFoundError, ValueError) as e:
            logger.error(f"Failed to load initial locations: {e}")
        else:
            replace_points(locations)

    logger.info("All components started")

    yield

    logger.info("Shutting down gracefully...")
    await _worker.stop()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="PhotoDensity",
    description="Photo location density heatmap service",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "PhotoDensity",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "grid_size": settings.grid.size,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe - always 200 while the process is running."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe.

    Returns 200 once a heatmap has been published, 503 before that.
    """
    if is_ready():
        return JSONResponse({"status": "ready", "generation": _worker.slot.latest.generation})
    return JSONResponse({"status": "not_ready"}, status_code=503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "snapshot_version": _store.version if _store else 0,
        "location_count": _store.count if _store else 0,
        "spread": _spread,
        "worker": _worker.metrics() if _worker else {},
        "render_cache": _renderer.cache_info() if _renderer else {},
    })


@app.put("/points")
async def put_points(request: PointsRequest) -> JSONResponse:
    """Replace the location snapshot and trigger a recompute."""
    locations = [r.to_location() for r in request.locations if r.has_location]
    version = replace_points(locations)
    return JSONResponse({
        "snapshot_version": version,
        "accepted": len(locations),
        "skipped": len(request.locations) - len(locations),
        "region": _region.to_dict() if _region else None,
    })


@app.put("/viewport")
async def put_viewport(request: ViewportRequest) -> JSONResponse:
    """Set the viewport region (and spread) and trigger a recompute."""
    global _region, _region_set_by_client, _spread

    region = Region.from_values(
        request.center_lat,
        request.center_lon,
        request.lat_delta,
        request.lon_delta,
    )
    if region is None:
        return JSONResponse({"error": "Degenerate viewport region"}, status_code=422)

    _region = region
    _region_set_by_client = True
    if request.spread is not None:
        _spread = _builder.clamp_spread(request.spread)

    generation = request_recompute()
    return JSONResponse({
        "generation": generation,
        "region": region.to_dict(),
        "spread": _spread,
    })


@app.put("/spread")
async def put_spread(request: SpreadRequest) -> JSONResponse:
    """Set the spread control value and trigger a recompute."""
    global _spread

    _spread = _builder.clamp_spread(request.spread)
    generation = request_recompute()
    return JSONResponse({
        "generation": generation,
        "spread": _spread,
        "radius_cells": _builder.radius_cells(_spread),
    })


@app.post("/viewport/zoom")
async def zoom(request: ZoomRequest) -> JSONResponse:
    """Zoom the current viewport in, out, or reset to the world view."""
    global _region, _region_set_by_client

    current = _region or default_region()
    if request.action == "in":
        _region = zoom_in(current)
    elif request.action == "out":
        _region = zoom_out(current)
    else:
        _region = world_region()
    _region_set_by_client = True

    generation = request_recompute()
    return JSONResponse({
        "generation": generation,
        "region": _region.to_dict(),
        "zoom_level": round(zoom_level(_region), 2),
    })


@app.get("/heatmap")
async def heatmap(wait: bool = Query(default=False)) -> JSONResponse:
    """Metadata of the latest published heatmap."""
    if wait and _worker is not None:
        await _worker.wait_idle()

    result = _worker.slot.latest if _worker else None
    if result is None:
        return JSONResponse({"error": "No heatmap available yet"}, status_code=503)

    date_range = _store.date_range()
    payload = result.heatmap.to_dict()
    payload.update({
        "generation": result.generation,
        "snapshot_version": result.command.snapshot_version,
        "spread": result.command.spread,
        "compute_ms": round(result.elapsed_ms, 1),
        "normalization": _normalizer.percentile_stats(result.heatmap.grid).to_dict(),
        "date_range": [d.isoformat() for d in date_range] if date_range else None,
    })
    return JSONResponse(payload)


@app.get("/heatmap.png")
async def heatmap_png(
    width: int = Query(default=1024, ge=1),
    height: int = Query(default=1024, ge=1),
    wait: bool = Query(default=False),
) -> Response:
    """
    Render the latest heatmap as a PNG overlay.

    Returns 204 when there is no heatmap or nothing to draw, so the
    map can skip the overlay for this frame.
    """
    if wait and _worker is not None:
        await _worker.wait_idle()

    result = _worker.slot.latest if _worker else None
    if result is None or not result.heatmap.has_data:
        return Response(status_code=204)

    loop = asyncio.get_running_loop()
    image = await loop.run_in_executor(
        None,
        _renderer.render,
        result.heatmap.grid,
        result.heatmap.scale,
        (width, height),
    )
    if image is None:
        return Response(status_code=204)

    return Response(
        content=encode_png(image),
        media_type="image/png",
        headers={"X-Heatmap-Generation": str(result.generation)},
    )


@app.get("/legend")
async def legend() -> JSONResponse:
    """Gradient stops for legend rendering."""
    return JSONResponse({"stops": legend_stops()})


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "photo_density.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
