"""
Grid Optical Flow Estimation
============================

Single-scale, grid-sampled Lucas-Kanade estimator for water-surface
velocity.

Pipeline (strictly downward):
    frames -> intensity -> gradients -> per-cell solves
           -> calibrated vectors -> summary

Key Design Decisions:
    - One solve per grid cell, no pyramids and no iterative refinement
    - Textureless windows degrade to zero motion instead of failing
    - All tuning constants travel in EstimatorConfig, per call
    - Gradient buffers live only for the duration of one call
"""

import logging
import numbers
from dataclasses import asdict, dataclass, replace
from typing import Optional, Protocol, Union

import numpy as np

from riverflow.errors import DimensionMismatchError, InvalidConfigError
from riverflow.flow.calibration import (
    DEFAULT_CALIBRATION_FACTOR,
    DEFAULT_MAX_SPEED,
    calibrate,
)
from riverflow.flow.gradients import BORDER_MODES, compute_gradients, to_intensity
from riverflow.flow.grid import build_grid
from riverflow.flow.metrics import summarize_flow
from riverflow.flow.solver import DEFAULT_EPSILON, solve_grid
from riverflow.models.flow import FlowField, FlowSummary, FlowVector
from riverflow.stream.frame import Frame


logger = logging.getLogger(__name__)


FrameLike = Union[Frame, np.ndarray]


def _is_integer(value) -> bool:
    # numpy integers count, bools do not
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


@dataclass(frozen=True)
class EstimatorConfig:
    """
    Tuning constants for one estimation call.

    Attributes:
        grid_size: Cells per side of the sample lattice
        window_size: Side of each cell's solve window (pixels)
        calibration_factor: Pixel displacement to m/s scale
        max_speed: Upper clamp on calibrated speed (m/s)
        ill_conditioned_epsilon: Determinant threshold for zero fallback
        padding: Gradient border handling, "zero" or "edge"
        workers: Threads used for per-cell solves (1 = sequential)
    """

    grid_size: int = 10
    window_size: int = 15
    calibration_factor: float = DEFAULT_CALIBRATION_FACTOR
    max_speed: float = DEFAULT_MAX_SPEED
    ill_conditioned_epsilon: float = DEFAULT_EPSILON
    padding: str = "zero"
    workers: int = 1

    def validate(self) -> None:
        """
        Check the configuration before any computation starts.

        Raises:
            InvalidConfigError: Listing every invalid field
        """
        errors = []

        if not _is_integer(self.grid_size) or self.grid_size < 1:
            errors.append(f"grid_size must be an integer >= 1, got {self.grid_size}")
        if not _is_integer(self.window_size) or self.window_size < 1:
            errors.append(f"window_size must be an integer >= 1, got {self.window_size}")
        if not self.calibration_factor > 0:
            errors.append(f"calibration_factor must be > 0, got {self.calibration_factor}")
        if not self.max_speed > 0:
            errors.append(f"max_speed must be > 0, got {self.max_speed}")
        if not self.ill_conditioned_epsilon > 0:
            errors.append(
                f"ill_conditioned_epsilon must be > 0, got {self.ill_conditioned_epsilon}"
            )
        if self.padding not in BORDER_MODES:
            errors.append(f"padding must be one of {sorted(BORDER_MODES)}, got {self.padding!r}")
        if not _is_integer(self.workers) or self.workers < 1:
            errors.append(f"workers must be an integer >= 1, got {self.workers}")

        if errors:
            raise InvalidConfigError(
                "Estimator configuration is invalid:\n" + "\n".join(errors)
            )

    def with_overrides(self, **overrides) -> "EstimatorConfig":
        """Copy with some fields replaced (None values are ignored)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return asdict(self)


@dataclass(frozen=True, slots=True)
class FlowEstimate:
    """A flow field together with its summary."""

    field: FlowField
    summary: FlowSummary


class FlowEstimator(Protocol):
    """
    Protocol for frame-pair flow estimators.

    Monitors and the HTTP service depend on this interface only.
    """

    def analyze(self, previous: FrameLike, current: FrameLike) -> FlowEstimate:
        """Estimate flow between two frames and summarize it."""
        ...


def _as_frame(frame: FrameLike) -> Frame:
    return frame if isinstance(frame, Frame) else Frame(pixels=frame)


def estimate_flow(
    frame_a: FrameLike,
    frame_b: FrameLike,
    config: Optional[EstimatorConfig] = None,
) -> FlowField:
    """
    Estimate the grid flow field between two frames.

    Args:
        frame_a: Previous (reference) frame
        frame_b: Current frame
        config: Estimator configuration (defaults if None)

    Returns:
        FlowField with grid_size^2 vectors in row-major order

    Raises:
        InvalidConfigError: If the configuration is degenerate
        DimensionMismatchError: If the frames differ in width or height
        InvalidFrameError: If a frame is not 3-channel uint8 data
    """
    config = config or EstimatorConfig()
    config.validate()

    previous = _as_frame(frame_a)
    current = _as_frame(frame_b)

    if previous.shape != current.shape:
        raise DimensionMismatchError(previous.shape, current.shape)

    width, height = previous.width, previous.height
    cells = build_grid(width, height, int(config.grid_size), int(config.window_size))

    gradients = None
    try:
        gradients = compute_gradients(
            to_intensity(previous),
            to_intensity(current),
            padding=config.padding,
        )
        solutions = solve_grid(
            gradients,
            cells,
            epsilon=config.ill_conditioned_epsilon,
            workers=int(config.workers),
        )
    finally:
        # Release the large per-pixel buffers before building the result
        del gradients

    vectors = []
    ill_conditioned = 0
    for cell, solution in zip(cells, solutions):
        speed, direction = calibrate(
            solution.u,
            solution.v,
            calibration_factor=config.calibration_factor,
            max_speed=config.max_speed,
        )
        ill_conditioned += solution.ill_conditioned
        vectors.append(FlowVector(
            row=cell.row,
            col=cell.col,
            x=cell.x,
            y=cell.y,
            u=solution.u,
            v=solution.v,
            speed=speed,
            direction=direction,
            ill_conditioned=solution.ill_conditioned,
        ))

    logger.debug(
        f"Flow estimated on {width}x{height}: "
        f"{len(vectors)} cells, {ill_conditioned} ill-conditioned"
    )

    return FlowField(
        vectors=tuple(vectors),
        grid_size=int(config.grid_size),
        width=width,
        height=height,
    )


class GridFlowEstimator:
    """
    Grid Lucas-Kanade estimator bound to a configuration.

    Stateless between calls: every call builds its own intermediate
    buffers, so one instance can serve concurrent callers.

    Example:
        estimator = GridFlowEstimator(EstimatorConfig(grid_size=8))
        estimate = estimator.analyze(prev_frame, curr_frame)
        print(estimate.summary.average_speed)
    """

    def __init__(self, config: Optional[EstimatorConfig] = None) -> None:
        """
        Initialize the estimator.

        Args:
            config: Estimator configuration (validated here, fail fast)

        Raises:
            InvalidConfigError: If the configuration is degenerate
        """
        self.config = config or EstimatorConfig()
        self.config.validate()

        logger.info(
            f"GridFlowEstimator initialized: "
            f"grid={self.config.grid_size}x{self.config.grid_size}, "
            f"window={self.config.window_size}, "
            f"factor={self.config.calibration_factor}, "
            f"max_speed={self.config.max_speed}"
        )

    def compute(self, previous: FrameLike, current: FrameLike) -> FlowField:
        """Estimate the flow field between two frames."""
        return estimate_flow(previous, current, self.config)

    def analyze(self, previous: FrameLike, current: FrameLike) -> FlowEstimate:
        """Estimate the flow field and reduce it to summary statistics."""
        field = self.compute(previous, current)
        return FlowEstimate(field=field, summary=summarize_flow(field))
