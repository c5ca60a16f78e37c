"""
Grid and Solver Tests
=====================

Tests for grid sampling and the per-cell least-squares solve.
"""

import numpy as np
import pytest

from riverflow.flow.gradients import GradientField
from riverflow.flow.grid import GridCell, build_grid
from riverflow.flow.solver import solve_cell, solve_grid


def _full_window(height: int, width: int) -> GridCell:
    return GridCell(row=0, col=0, x=width // 2, y=height // 2,
                    x0=0, x1=width, y0=0, y1=height)


class TestGrid:
    """Tests for build_grid."""

    def test_cell_count_and_order(self):
        """Verify grid_size^2 cells in row-major order."""
        cells = build_grid(100, 50, grid_size=10, window_size=15)

        assert len(cells) == 100
        for k, cell in enumerate(cells):
            assert (cell.row, cell.col) == (k // 10, k % 10)

    def test_centers(self):
        """Verify centers sit at floor((j + 0.5) * W / N)."""
        cells = build_grid(100, 50, grid_size=10, window_size=15)

        assert (cells[0].x, cells[0].y) == (5, 2)
        assert (cells[-1].x, cells[-1].y) == (95, 47)

    def test_border_windows_clamped(self):
        """Verify windows never leave the frame."""
        cells = build_grid(100, 50, grid_size=10, window_size=15)

        first, last = cells[0], cells[-1]
        assert (first.x0, first.x1, first.y0, first.y1) == (0, 13, 0, 10)
        assert (last.x0, last.x1, last.y0, last.y1) == (88, 100, 40, 50)
        for cell in cells:
            assert 0 <= cell.x0 < cell.x1 <= 100
            assert 0 <= cell.y0 < cell.y1 <= 50

    def test_interior_window_area(self):
        """Verify an unclamped window covers window_size^2 pixels."""
        cells = build_grid(200, 200, grid_size=10, window_size=15)
        assert cells[55].window_area == 15 * 15

    def test_tiny_frame(self):
        """Verify frames smaller than the window still get valid cells."""
        cells = build_grid(4, 3, grid_size=2, window_size=15)

        assert len(cells) == 4
        for cell in cells:
            assert cell.window_area == 12


class TestSolver:
    """Tests for solve_cell and solve_grid."""

    def test_recovers_known_displacement(self):
        """Verify dt = a*dx + b*dy solves to (u, v) = (a, b)."""
        rng = np.random.default_rng(42)
        dx = rng.normal(size=(15, 15))
        dy = rng.normal(size=(15, 15))
        dt = 0.75 * dx - 1.25 * dy

        solution = solve_cell(GradientField(dx=dx, dy=dy, dt=dt), _full_window(15, 15))

        assert not solution.ill_conditioned
        assert solution.u == pytest.approx(0.75)
        assert solution.v == pytest.approx(-1.25)
        assert solution.determinant > 0

    def test_textureless_window_falls_back_to_zero(self):
        """Verify a singular system yields zero motion, not an error."""
        zeros = np.zeros((15, 15))
        grads = GradientField(dx=zeros, dy=zeros, dt=np.ones((15, 15)))

        solution = solve_cell(grads, _full_window(15, 15))

        assert solution.ill_conditioned
        assert (solution.u, solution.v) == (0.0, 0.0)

    def test_one_dimensional_texture_is_ill_conditioned(self):
        """Verify gradients along a single axis cannot be solved."""
        dx = np.ones((15, 15))
        grads = GradientField(dx=dx, dy=np.zeros((15, 15)), dt=dx)

        assert solve_cell(grads, _full_window(15, 15)).ill_conditioned

    def test_threaded_matches_sequential(self):
        """Verify worker count does not change results or order."""
        rng = np.random.default_rng(7)
        shape = (60, 80)
        grads = GradientField(
            dx=rng.normal(size=shape),
            dy=rng.normal(size=shape),
            dt=rng.normal(size=shape),
        )
        cells = build_grid(80, 60, grid_size=6, window_size=9)

        sequential = solve_grid(grads, cells, workers=1)
        threaded = solve_grid(grads, cells, workers=4)

        assert sequential == threaded
