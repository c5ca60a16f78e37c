"""
riverflow Configuration
=======================

This module handles configuration loading for the flow service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    RIVERFLOW_GRID_SIZE          -> estimator.grid_size
    RIVERFLOW_WINDOW_SIZE        -> estimator.window_size
    RIVERFLOW_CALIBRATION_FACTOR -> estimator.calibration_factor
    RIVERFLOW_MAX_SPEED          -> estimator.max_speed
    RIVERFLOW_LIVE_ENABLED       -> live.enabled
    RIVERFLOW_LIVE_SOURCE        -> live.source
    RIVERFLOW_LIVE_INTERVAL      -> live.interval_seconds
    RIVERFLOW_PORT               -> server.port
    RIVERFLOW_LOG_LEVEL          -> logging.level
    PORT                         -> server.port (Cloud Run)

Example:
    from riverflow.config import load_config

    settings = load_config()
    print(settings.estimator.grid_size)
    print(settings.live.interval_seconds)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from riverflow.flow.estimator import EstimatorConfig


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="riverflow", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class EstimatorSettings(BaseModel):
    """Grid optical flow estimator configuration."""

    grid_size: int = Field(
        default=10,
        ge=1,
        description="Cells per side of the sample lattice",
    )
    window_size: int = Field(
        default=15,
        ge=1,
        description="Side of each cell's solve window in pixels",
    )
    calibration_factor: float = Field(
        default=0.5,
        gt=0,
        description="Pixel displacement to m/s scale factor",
    )
    max_speed: float = Field(
        default=5.0,
        gt=0,
        description="Upper clamp on calibrated speed (m/s)",
    )
    ill_conditioned_epsilon: float = Field(
        default=1e-6,
        gt=0,
        description="Determinant threshold for the zero-motion fallback",
    )
    padding: str = Field(
        default="zero",
        description="Gradient border handling: 'zero' or 'edge'",
    )
    workers: int = Field(
        default=1,
        ge=1,
        description="Threads for per-cell solves (1 = sequential)",
    )

    def to_estimator_config(self) -> EstimatorConfig:
        """Convert to the estimator's per-call configuration."""
        return EstimatorConfig(**self.model_dump())


class VisualizationConfig(BaseModel):
    """Flow overlay rendering configuration."""

    enabled: bool = Field(
        default=False,
        description="Render flow overlays for live reports",
    )
    speed_normalization: float = Field(
        default=5.0,
        gt=0,
        description="Speed rendered as full red (m/s)",
    )
    arrow_scale: float = Field(
        default=15.0,
        gt=0,
        description="Arrow length in pixels per m/s",
    )
    tile_alpha: float = Field(
        default=0.3,
        ge=0,
        le=1.0,
        description="Opacity of per-cell speed tiles",
    )


class LiveConfig(BaseModel):
    """Periodic live analysis configuration."""

    enabled: bool = Field(
        default=False,
        description="Start the live monitor with the service",
    )
    source: Optional[str] = Field(
        default=None,
        description="Video path, stream URL or camera index",
    )
    interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between live analysis cycles",
    )
    frame_gap: int = Field(
        default=1,
        ge=1,
        description="Frames between the two frames of a pair",
    )
    history_size: int = Field(
        default=20,
        ge=1,
        description="Number of live reports kept in memory",
    )


class BatchConfig(BaseModel):
    """Batch video analysis configuration."""

    frame_step: int = Field(
        default=15,
        ge=1,
        description="Frames between sampled pair starts",
    )
    frame_gap: int = Field(
        default=1,
        ge=1,
        description="Frames between the two frames of a pair",
    )
    max_pairs: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum pairs per video (None = whole video)",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for riverflow.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    estimator: EstimatorSettings = Field(default_factory=EstimatorSettings)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    live: LiveConfig = Field(default_factory=LiveConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
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

    # Estimator settings
    if env_grid := os.environ.get("RIVERFLOW_GRID_SIZE"):
        config_data.setdefault("estimator", {})["grid_size"] = int(env_grid)
    if env_window := os.environ.get("RIVERFLOW_WINDOW_SIZE"):
        config_data.setdefault("estimator", {})["window_size"] = int(env_window)
    if env_factor := os.environ.get("RIVERFLOW_CALIBRATION_FACTOR"):
        config_data.setdefault("estimator", {})["calibration_factor"] = float(env_factor)
    if env_max := os.environ.get("RIVERFLOW_MAX_SPEED"):
        config_data.setdefault("estimator", {})["max_speed"] = float(env_max)

    # Live monitor settings
    if env_live := os.environ.get("RIVERFLOW_LIVE_ENABLED"):
        config_data.setdefault("live", {})["enabled"] = env_live.lower() in ("1", "true", "yes")
    if env_source := os.environ.get("RIVERFLOW_LIVE_SOURCE"):
        config_data.setdefault("live", {})["source"] = env_source
    if env_interval := os.environ.get("RIVERFLOW_LIVE_INTERVAL"):
        config_data.setdefault("live", {})["interval_seconds"] = float(env_interval)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("RIVERFLOW_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("RIVERFLOW_LOG_LEVEL"):
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
