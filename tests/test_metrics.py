"""
Calibration and Metrics Tests
=============================

Tests for pixel-to-m/s calibration, circular statistics and compass
bucketing.
"""

import math

import numpy as np
import pytest

from riverflow.flow.calibration import calibrate
from riverflow.flow.metrics import (
    compute_circular_mean,
    direction_to_compass,
    moving_directions,
    summarize_flow,
)
from riverflow.models.flow import CompassDirection, FlowField, FlowVector


def _field(values, grid_size: int) -> FlowField:
    """Build a FlowField from (speed, direction) pairs."""
    vectors = []
    for k, (speed, direction) in enumerate(values):
        vectors.append(FlowVector(
            row=k // grid_size,
            col=k % grid_size,
            x=0,
            y=0,
            u=speed * math.cos(direction),
            v=speed * math.sin(direction),
            speed=speed,
            direction=direction,
        ))
    return FlowField(vectors=tuple(vectors), grid_size=grid_size, width=10, height=10)


class TestCalibration:
    """Tests for calibrate."""

    def test_scales_magnitude(self):
        """Verify speed = hypot(u, v) * factor."""
        speed, direction = calibrate(3.0, 4.0, calibration_factor=0.5, max_speed=5.0)
        assert speed == pytest.approx(2.5)
        assert direction == pytest.approx(math.atan2(4.0, 3.0))

    def test_clamps_to_max_speed(self):
        """Verify speed never exceeds max_speed."""
        speed, _ = calibrate(30.0, 40.0, calibration_factor=0.5, max_speed=5.0)
        assert speed == 5.0

    def test_zero_motion(self):
        """Verify zero displacement gives zero speed and direction."""
        assert calibrate(0.0, 0.0) == (0.0, 0.0)

    def test_non_finite_magnitude_clamped(self):
        """Verify infinite displacement is clamped rather than propagated."""
        speed, _ = calibrate(float("inf"), 0.0, max_speed=5.0)
        assert speed == 5.0


class TestCircularMean:
    """Tests for compute_circular_mean."""

    def test_wraps_across_pi(self):
        """Verify angles either side of +/-pi average to pi, not 0."""
        mean, coherence = compute_circular_mean(np.array([math.pi - 0.1, -math.pi + 0.1]))
        assert abs(abs(mean) - math.pi) < 1e-9
        assert coherence == pytest.approx(math.cos(0.1))

    def test_opposite_directions_incoherent(self):
        """Verify opposing directions cancel."""
        _, coherence = compute_circular_mean(np.array([0.0, math.pi]))
        assert coherence == pytest.approx(0.0, abs=1e-12)

    def test_empty(self):
        """Verify an empty input returns (0, 0)."""
        assert compute_circular_mean(np.array([])) == (0.0, 0.0)


class TestCompassBucketing:
    """Tests for direction_to_compass."""

    @pytest.mark.parametrize("angle, expected", [
        (0.0, CompassDirection.WEST),
        (math.pi, CompassDirection.EAST),
        (-math.pi, CompassDirection.EAST),
        (math.pi / 2, CompassDirection.SOUTH),
        (-math.pi / 2, CompassDirection.NORTH),
        (-3 * math.pi / 4, CompassDirection.NORTHEAST),
        (3 * math.pi / 4, CompassDirection.SOUTHEAST),
        (math.pi / 4, CompassDirection.SOUTHWEST),
        (-math.pi / 4, CompassDirection.NORTHWEST),
    ])
    def test_sectors(self, angle, expected):
        """Verify each sector center maps to its compass label."""
        assert direction_to_compass(angle) == expected

    def test_sector_order(self):
        """Verify labels are indexed counter-clockwise from East."""
        assert [d.value for d in CompassDirection] == [
            "East", "Northeast", "North", "Northwest",
            "West", "Southwest", "South", "Southeast",
        ]


class TestSummary:
    """Tests for summarize_flow."""

    def test_average_and_max(self):
        """Verify average, magnitude and max speed."""
        field = _field([(1.0, math.pi), (2.0, math.pi), (3.0, math.pi), (0.0, 0.0)], 2)

        summary = summarize_flow(field)

        assert summary.average_speed == pytest.approx(1.5)
        assert summary.flow_magnitude == summary.average_speed
        assert summary.max_speed == pytest.approx(3.0)
        assert summary.active_cells == 3

    def test_dominant_direction_uses_circular_mean(self):
        """Verify directions straddling +/-pi resolve to East."""
        field = _field([(1.0, math.pi - 0.2), (1.0, -math.pi + 0.2)] * 2, 2)
        assert summarize_flow(field).dominant_direction == CompassDirection.EAST

    def test_ill_conditioned_cells_excluded_from_direction(self):
        """Verify zero-motion fallbacks do not outvote the moving cells."""
        moving = _field([(1.0, math.pi)] * 3, 3).vectors
        fallback = tuple(
            FlowVector(row=1 + k // 3, col=k % 3, x=0, y=0, u=0.0, v=0.0,
                       speed=0.0, direction=0.0, ill_conditioned=True)
            for k in range(6)
        )
        field = FlowField(vectors=moving + fallback, grid_size=3, width=10, height=10)

        summary = summarize_flow(field)

        assert len(moving_directions(field)) == 3
        assert summary.dominant_direction == CompassDirection.EAST
        assert summary.direction_coherence == pytest.approx(1.0)

    def test_still_field(self):
        """Verify an all-zero field has zero speed and West direction."""
        summary = summarize_flow(_field([(0.0, 0.0)] * 9, 3))

        assert summary.average_speed == 0.0
        assert summary.active_cells == 0
        assert summary.dominant_direction == CompassDirection.WEST

    def test_to_dict(self):
        """Verify the summary serializes its compass label as a string."""
        summary = summarize_flow(_field([(1.0, math.pi)], 1))
        data = summary.to_dict()

        assert data["dominant_direction"] == "East"
        assert data["average_speed"] == 1.0
