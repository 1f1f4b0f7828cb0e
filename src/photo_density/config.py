"""
PhotoDensity Configuration
==========================

This module handles configuration loading for the heatmap service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PHOTODENSITY_GRID_SIZE      -> grid.size
    PHOTODENSITY_SPREAD         -> grid.default_spread
    PHOTODENSITY_MAX_IMAGE_SIZE -> render.max_width, render.max_height
    PHOTODENSITY_DEBOUNCE_MS    -> worker.debounce_ms
    PHOTODENSITY_POINTS_PATH    -> source.points_path
    PHOTODENSITY_PORT           -> server.port
    PHOTODENSITY_LOG_LEVEL      -> logging.level
    PORT                        -> server.port (Cloud Run)

Example:
    from photo_density.config import settings

    print(settings.grid.size)
    print(settings.normalization.dense_threshold)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="photo-density", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class GridConfig(BaseModel):
    """Density grid configuration."""

    size: int = Field(
        default=150,
        ge=1,
        le=1024,
        description="Grid resolution (cells per axis)",
    )
    default_spread: float = Field(
        default=50.0,
        ge=0,
        description="Initial spread control value",
    )
    min_spread: float = Field(default=10.0, ge=0, description="Lowest accepted spread")
    max_spread: float = Field(default=100.0, gt=0, description="Highest accepted spread")
    spread_per_cell: float = Field(
        default=10.0,
        gt=0,
        description="Spread units per kernel cell of radius",
    )
    sigma_divisor: float = Field(
        default=2.5,
        gt=0,
        description="Kernel radius divided by this gives the Gaussian sigma",
    )


class NormalizationConfig(BaseModel):
    """Adaptive normalization constants."""

    dense_threshold: int = Field(
        default=100,
        ge=0,
        description="Positive-cell count above which a view counts as dense",
    )
    dense_percentile: float = Field(
        default=0.90,
        gt=0,
        le=1.0,
        description="Percentile rank used as the scale for dense views",
    )
    sparse_median_factor: float = Field(
        default=3.0,
        gt=0,
        description="Median multiplier for sparse views",
    )
    sparse_max_factor: float = Field(
        default=0.25,
        gt=0,
        description="Maximum multiplier for sparse views",
    )


class RenderConfig(BaseModel):
    """Image synthesis configuration."""

    max_width: int = Field(default=2048, ge=1, description="Maximum image width")
    max_height: int = Field(default=2048, ge=1, description="Maximum image height")
    disc_inset: float = Field(
        default=0.5,
        ge=0,
        description="Extra disc radius as a fraction of the cell size",
    )
    disc_padding_px: float = Field(
        default=1.0,
        ge=0,
        description="Extra disc radius in pixels",
    )
    blur_factor: float = Field(
        default=1.5,
        ge=0,
        description="Blur sigma as a multiple of the larger cell side",
    )
    cache_size: int = Field(
        default=4,
        ge=0,
        description="Rendered images kept in the LRU cache (0 disables)",
    )


class WorkerConfig(BaseModel):
    """Recompute worker configuration."""

    debounce_ms: float = Field(
        default=200.0,
        ge=0,
        description="Quiet period before a recompute starts",
    )


class SourceConfig(BaseModel):
    """Photo location source configuration."""

    points_path: Optional[str] = Field(
        default=None,
        description="JSON/CSV export loaded at startup",
    )
    progress_batch_size: int = Field(
        default=500,
        ge=1,
        description="Log loading progress every N records",
    )


class ViewportConfig(BaseModel):
    """Initial viewport configuration."""

    center_lat: float = Field(default=45.4642, ge=-90, le=90)
    center_lon: float = Field(default=9.19, ge=-180, le=180)
    lat_delta: float = Field(default=10.0, gt=0, le=180)
    lon_delta: float = Field(default=10.0, gt=0, le=360)
    fit_padding: float = Field(
        default=1.3,
        ge=1.0,
        description="Span multiplier when fitting the viewport to the photos",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for PhotoDensity.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    grid: GridConfig = Field(default_factory=GridConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Grid settings
    if env_size := os.environ.get("PHOTODENSITY_GRID_SIZE"):
        config_data.setdefault("grid", {})["size"] = int(env_size)
    if env_spread := os.environ.get("PHOTODENSITY_SPREAD"):
        config_data.setdefault("grid", {})["default_spread"] = float(env_spread)

    # Render settings
    if env_max := os.environ.get("PHOTODENSITY_MAX_IMAGE_SIZE"):
        render = config_data.setdefault("render", {})
        render["max_width"] = int(env_max)
        render["max_height"] = int(env_max)

    # Worker settings
    if env_debounce := os.environ.get("PHOTODENSITY_DEBOUNCE_MS"):
        config_data.setdefault("worker", {})["debounce_ms"] = float(env_debounce)

    # Source settings
    if env_points := os.environ.get("PHOTODENSITY_POINTS_PATH"):
        config_data.setdefault("source", {})["points_path"] = env_points

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("PHOTODENSITY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("PHOTODENSITY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
