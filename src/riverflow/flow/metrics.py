"""
Flow Metrics
============

Aggregate statistics computed from the per-cell flow field.

Key Metrics:
    - Average Speed: Mean calibrated speed over all cells (m/s)
    - Flow Magnitude: Reported as the same scalar as average speed
    - Dominant Direction: Circular mean direction, bucketed to 8 sectors
    - Direction Coherence: Resultant length R of the unit direction vectors

Formulas:
    mean_angle = atan2(mean(sin(theta)), mean(cos(theta)))
    R = |mean(e^{i theta})|
    sector = round(((mean_angle + pi) mod 2pi) / (pi / 4)) mod 8

Design Note:
    Only cells with a solved, non-zero displacement contribute to the
    direction mean. Ill-conditioned cells carry no direction information
    (atan2(0, 0) = 0) and would otherwise pull the mean toward West.
    A field with no moving cell reports angle 0.
"""

import logging
import math
from typing import Tuple

import numpy as np

from riverflow.models.flow import CompassDirection, FlowField, FlowSummary


logger = logging.getLogger(__name__)


SECTOR_WIDTH = math.pi / 4


def compute_circular_mean(angles: np.ndarray) -> Tuple[float, float]:
    """
    Circular mean and resultant length of a set of angles.

    Args:
        angles: Angles in radians (any shape)

    Returns:
        Tuple of (mean_angle in [-pi, pi], resultant_length in [0, 1]).
        An empty input returns (0.0, 0.0).

    Reference:
        Fisher, N.I. (1993). Statistical Analysis of Circular Data.
    """
    angles = np.asarray(angles, dtype=np.float64).ravel()
    if angles.size == 0:
        return 0.0, 0.0

    cos_mean = float(np.mean(np.cos(angles)))
    sin_mean = float(np.mean(np.sin(angles)))

    mean_angle = math.atan2(sin_mean, cos_mean)
    resultant_length = min(1.0, math.hypot(cos_mean, sin_mean))

    return mean_angle, resultant_length


def direction_to_compass(angle: float) -> CompassDirection:
    """
    Bucket an angle (radians) into one of 8 compass sectors.

    Rounding is half-up so sector boundaries resolve deterministically.
    """
    shifted = (angle + math.pi) % (2 * math.pi)
    index = int(math.floor(shifted / SECTOR_WIDTH + 0.5)) % 8
    return CompassDirection.from_index(index)


def compute_average_speed(field: FlowField) -> float:
    """Mean calibrated speed over every cell (m/s)."""
    speeds = field.speeds
    if speeds.size == 0:
        return 0.0
    return float(np.mean(speeds))


def count_active_cells(field: FlowField) -> int:
    """Cells whose raw displacement is non-zero."""
    return sum(1 for vec in field if vec.u != 0.0 or vec.v != 0.0)


def moving_directions(field: FlowField) -> np.ndarray:
    """Directions of well-conditioned cells with non-zero displacement."""
    return np.array(
        [
            vec.direction
            for vec in field
            if not vec.ill_conditioned and (vec.u != 0.0 or vec.v != 0.0)
        ],
        dtype=np.float64,
    )


def summarize_flow(field: FlowField) -> FlowSummary:
    """
    Reduce a flow field to its summary statistics.

    Args:
        field: Complete flow field from one frame pair

    Returns:
        FlowSummary
    """
    average_speed = compute_average_speed(field)
    mean_direction, coherence = compute_circular_mean(moving_directions(field))
    speeds = field.speeds
    max_speed = float(np.max(speeds)) if speeds.size else 0.0

    summary = FlowSummary(
        average_speed=average_speed,
        flow_magnitude=average_speed,
        dominant_direction=direction_to_compass(mean_direction),
        mean_direction=mean_direction,
        max_speed=max_speed,
        active_cells=count_active_cells(field),
        direction_coherence=coherence,
    )

    logger.debug(f"Flow summary: {summary}")
    return summary
