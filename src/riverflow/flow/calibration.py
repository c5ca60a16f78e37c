"""
Velocity Calibration
====================

Maps raw pixel displacement to physical surface velocity.

    speed     = min(max_speed, sqrt(u^2 + v^2) * calibration_factor)
    direction = atan2(v, u)

The calibration factor folds together ground sampling distance and frame
interval for the capturing camera. This module does not infer either;
callers supply constants appropriate to their device.
"""

import math
from typing import Tuple


DEFAULT_CALIBRATION_FACTOR = 0.5
DEFAULT_MAX_SPEED = 5.0


def calibrate(
    u: float,
    v: float,
    calibration_factor: float = DEFAULT_CALIBRATION_FACTOR,
    max_speed: float = DEFAULT_MAX_SPEED,
) -> Tuple[float, float]:
    """
    Convert a raw displacement into (speed, direction).

    Args:
        u: Horizontal displacement in pixels per frame interval
        v: Vertical displacement in pixels per frame interval
        calibration_factor: Pixels-to-m/s scale
        max_speed: Upper clamp on speed (m/s)

    Returns:
        Tuple of (speed in [0, max_speed], direction in radians [-pi, pi])
    """
    magnitude = math.hypot(u, v)
    speed = min(max_speed, magnitude * calibration_factor)

    if not math.isfinite(speed):
        speed = max_speed

    return speed, math.atan2(v, u)
