"""
Flow Computation Module
=======================

Grid-sampled optical flow for water-surface velocity estimation.

This module provides:
    - Grayscale conversion and Sobel/temporal gradients
    - Grid sampling with border-clamped windows
    - Per-cell least-squares (Lucas-Kanade) motion solve
    - Pixel-to-m/s calibration with clamping
    - Summary metrics (average speed, dominant direction)

No dense flow, no pyramids, no sub-pixel refinement.
"""

from riverflow.errors import (
    FlowEstimationError,
    DimensionMismatchError,
    InvalidConfigError,
    InvalidFrameError,
)
from riverflow.flow.gradients import GradientField, compute_gradients, to_intensity
from riverflow.flow.grid import GridCell, build_grid
from riverflow.flow.solver import LocalSolution, solve_cell, solve_grid
from riverflow.flow.calibration import calibrate
from riverflow.flow.metrics import (
    compute_circular_mean,
    direction_to_compass,
    moving_directions,
    summarize_flow,
)
from riverflow.flow.estimator import (
    EstimatorConfig,
    FlowEstimate,
    FlowEstimator,
    GridFlowEstimator,
    estimate_flow,
)

__all__ = [
    # Errors
    "FlowEstimationError",
    "DimensionMismatchError",
    "InvalidConfigError",
    "InvalidFrameError",
    # Components
    "GradientField",
    "compute_gradients",
    "to_intensity",
    "GridCell",
    "build_grid",
    "LocalSolution",
    "solve_cell",
    "solve_grid",
    "calibrate",
    # Metrics
    "compute_circular_mean",
    "direction_to_compass",
    "moving_directions",
    "summarize_flow",
    # Estimation
    "EstimatorConfig",
    "FlowEstimate",
    "FlowEstimator",
    "GridFlowEstimator",
    "estimate_flow",
]
