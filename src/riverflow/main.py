"""
riverflow Service
=================

FastAPI entry point for water-surface flow estimation.

Endpoints:
    GET  /              - Service information
    GET  /health        - Liveness probe
    POST /analyze       - Estimate flow between two base64-encoded frames
    GET  /live          - Latest live analysis report
    GET  /live/metrics  - Live monitor metrics
    POST /live/start    - Start periodic live analysis
    POST /live/stop     - Stop periodic live analysis
"""

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from riverflow.config import load_config, setup_logging
from riverflow.errors import FlowEstimationError
from riverflow.flow.estimator import EstimatorConfig, GridFlowEstimator
from riverflow.models.output import FlowReport
from riverflow.monitor.live import LiveFlowMonitor
from riverflow.observability.visualization import FlowVisualizer, render_flow_overlay
from riverflow.stream.image_decoder import ImageDecodeError, decode_frame, encode_image_b64
from riverflow.stream.video import VideoFramePairSource, VideoSource


logger = logging.getLogger(__name__)


settings = load_config()
setup_logging(settings)


# =============================================================================
# Global State
# =============================================================================

_estimator: Optional[GridFlowEstimator] = None
_live_source: Optional[VideoFramePairSource] = None
_live_monitor: Optional[LiveFlowMonitor] = None
_startup_time: float = 0.0

# Error counters
_analyze_error_count: int = 0


def get_estimator() -> Optional[GridFlowEstimator]:
    return _estimator

def get_live_monitor() -> Optional[LiveFlowMonitor]:
    return _live_monitor


# =============================================================================
# Request Models
# =============================================================================

# Upper bounds on per-request lattice and window sizes
MAX_GRID_SIZE = 200
MAX_WINDOW_SIZE = 201


class EstimatorOverrides(BaseModel):
    """Per-request estimator overrides. Omitted fields keep the configured value."""

    grid_size: Optional[int] = Field(default=None, le=MAX_GRID_SIZE)
    window_size: Optional[int] = Field(default=None, le=MAX_WINDOW_SIZE)
    calibration_factor: Optional[float] = None
    max_speed: Optional[float] = None
    ill_conditioned_epsilon: Optional[float] = None
    padding: Optional[str] = None


class AnalyzeRequest(BaseModel):
    """Frame pair submitted for analysis."""

    previous_image: str = Field(..., description="Base64 JPEG/PNG or data URL")
    current_image: str = Field(..., description="Base64 JPEG/PNG or data URL")
    config: Optional[EstimatorOverrides] = None
    include_vectors: bool = True
    include_overlay: bool = False


# =============================================================================
# Helpers
# =============================================================================

def parse_video_source(source: str) -> VideoSource:
    """Camera indices arrive as strings from YAML/env; everything else is a path or URL."""
    return int(source) if source.isdigit() else source


def _analyze_pair(request: AnalyzeRequest, config: EstimatorConfig) -> FlowReport:
    previous = decode_frame(request.previous_image, label="previous_image")
    current = decode_frame(request.current_image, label="current_image")

    estimator = _estimator if config == _estimator.config else GridFlowEstimator(config)
    estimate = estimator.analyze(previous, current)

    overlay = None
    if request.include_overlay:
        image = render_flow_overlay(
            current,
            estimate.field,
            speed_normalization=settings.visualization.speed_normalization,
            arrow_scale=settings.visualization.arrow_scale,
            tile_alpha=settings.visualization.tile_alpha,
        )
        overlay = encode_image_b64(image, ".png")

    return FlowReport.from_estimate(
        estimate,
        previous=previous,
        current=current,
        include_vectors=request.include_vectors,
        overlay_png=overlay,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _estimator, _live_source, _live_monitor, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.service.name} {settings.service.version}")

    _estimator = GridFlowEstimator(settings.estimator.to_estimator_config())

    if settings.live.source:
        _live_source = VideoFramePairSource(
            parse_video_source(settings.live.source),
            frame_gap=settings.live.frame_gap,
        )
        _live_monitor = LiveFlowMonitor(
            source=_live_source,
            estimator=_estimator,
            interval_seconds=settings.live.interval_seconds,
            history_size=settings.live.history_size,
            visualizer=FlowVisualizer(
                enabled=settings.visualization.enabled,
                speed_normalization=settings.visualization.speed_normalization,
                arrow_scale=settings.visualization.arrow_scale,
                tile_alpha=settings.visualization.tile_alpha,
            ),
        )
        if settings.live.enabled:
            _live_monitor.start()
    elif settings.live.enabled:
        logger.warning("Live analysis enabled but no live.source configured")

    yield

    logger.info("Shutting down gracefully...")

    if _live_monitor is not None:
        await _live_monitor.stop()
        _live_monitor = None

    if _live_source is not None:
        _live_source.close()
        _live_source = None

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="riverflow",
    description="Grid optical flow estimation of water-surface velocity",
    version=settings.service.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": settings.service.name,
        "version": settings.service.version,
        "status": "running",
        "estimator": settings.estimator.model_dump(),
        "live_configured": _live_monitor is not None,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "analyze_errors": _analyze_error_count,
    })


@app.post("/analyze")
async def analyze(request: AnalyzeRequest) -> JSONResponse:
    """
    Estimate flow between two frames.

    Returns 400 for undecodable images and 422 for frame pairs or
    configurations the estimator rejects.
    """
    global _analyze_error_count

    if _estimator is None:
        return JSONResponse({"error": "Estimator not initialized"}, status_code=503)

    overrides = request.config.model_dump() if request.config else {}

    try:
        config = _estimator.config.with_overrides(**overrides)
        report = await asyncio.to_thread(_analyze_pair, request, config)
    except ImageDecodeError as e:
        _analyze_error_count += 1
        logger.warning(f"Analyze request rejected: {e}")
        return JSONResponse({"error": str(e)}, status_code=400)
    except FlowEstimationError as e:
        _analyze_error_count += 1
        logger.warning(f"Analyze request rejected: {e}")
        return JSONResponse(
            {"error": str(e), "type": type(e).__name__},
            status_code=422,
        )

    return JSONResponse(report.model_dump(mode="json"))


@app.get("/live")
async def live_latest() -> JSONResponse:
    """Get the latest live analysis report."""
    monitor = get_live_monitor()
    latest = monitor.latest if monitor else None

    if latest is None:
        return JSONResponse(
            {"error": "No live report available yet"},
            status_code=503,
        )

    return JSONResponse(latest.model_dump(mode="json"))


@app.get("/live/metrics")
async def live_metrics() -> JSONResponse:
    """Live monitor metrics for observability."""
    monitor = get_live_monitor()
    if monitor is None:
        return JSONResponse({"configured": False, "running": False})
    return JSONResponse({"configured": True, **monitor.metrics_dict()})


@app.post("/live/start")
async def live_start() -> JSONResponse:
    """Start periodic live analysis."""
    monitor = get_live_monitor()
    if monitor is None:
        return JSONResponse(
            {"error": "No live source configured"},
            status_code=409,
        )

    monitor.start()
    return JSONResponse({"status": "started", "interval_seconds": monitor.interval_seconds})


@app.post("/live/stop")
async def live_stop() -> JSONResponse:
    """Stop periodic live analysis. An in-flight estimate is allowed to finish."""
    monitor = get_live_monitor()
    if monitor is None:
        return JSONResponse(
            {"error": "No live source configured"},
            status_code=409,
        )

    await monitor.stop()
    return JSONResponse({"status": "stopped"})


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "riverflow.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
