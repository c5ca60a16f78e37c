"""
Local Motion Solver
===================

Windowed least-squares (Lucas-Kanade) solve of the brightness-constancy
equation, once per grid cell.

For each cell window the gradient products are summed into the 2x2
normal-equations system:

    | Sxx  Sxy | |u|   | Sxt |
    | Sxy  Syy | |v| = | Syt |

    det = Sxx * Syy - Sxy^2
    u   = (Syy * Sxt - Sxy * Syt) / det
    v   = (Sxx * Syt - Sxy * Sxt) / det

Ill-conditioned windows (|det| < epsilon, typically flat or textureless
water) produce u = v = 0 instead of amplified noise. There is no
iterative refinement and no pyramidal warping.

Cells share no mutable state, so solve_grid can fan the work out to a
thread pool. Results are always joined before returning.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from riverflow.flow.gradients import GradientField
from riverflow.flow.grid import GridCell


logger = logging.getLogger(__name__)


DEFAULT_EPSILON = 1e-6


@dataclass(frozen=True, slots=True)
class LocalSolution:
    """
    Raw displacement for one cell.

    Attributes:
        u: Horizontal displacement (pixels per frame interval)
        v: Vertical displacement (pixels per frame interval)
        determinant: det of the normal-equations matrix
        ill_conditioned: True when the zero fallback was applied
    """

    u: float
    v: float
    determinant: float
    ill_conditioned: bool


def solve_cell(
    gradients: GradientField,
    cell: GridCell,
    epsilon: float = DEFAULT_EPSILON,
) -> LocalSolution:
    """
    Solve the normal equations over a single cell window.

    Args:
        gradients: Gradient field of the frame pair
        cell: Grid cell with clamped window bounds
        epsilon: Determinant threshold below which the system is ill-conditioned

    Returns:
        LocalSolution (zero displacement if ill-conditioned)
    """
    window = (slice(cell.y0, cell.y1), slice(cell.x0, cell.x1))
    dx = gradients.dx[window]
    dy = gradients.dy[window]
    dt = gradients.dt[window]

    sxx = float(np.sum(dx * dx))
    sxy = float(np.sum(dx * dy))
    syy = float(np.sum(dy * dy))
    sxt = float(np.sum(dx * dt))
    syt = float(np.sum(dy * dt))

    det = sxx * syy - sxy * sxy

    if not math.isfinite(det) or abs(det) < epsilon:
        return LocalSolution(u=0.0, v=0.0, determinant=det, ill_conditioned=True)

    u = (syy * sxt - sxy * syt) / det
    v = (sxx * syt - sxy * sxt) / det

    if not (math.isfinite(u) and math.isfinite(v)):
        return LocalSolution(u=0.0, v=0.0, determinant=det, ill_conditioned=True)

    return LocalSolution(u=u, v=v, determinant=det, ill_conditioned=False)


def solve_grid(
    gradients: GradientField,
    cells: Sequence[GridCell],
    epsilon: float = DEFAULT_EPSILON,
    workers: int = 1,
) -> List[LocalSolution]:
    """
    Solve every cell of the grid.

    Args:
        gradients: Gradient field of the frame pair
        cells: Cells in row-major order
        epsilon: Ill-conditioning threshold
        workers: Thread count; 1 solves sequentially

    Returns:
        One LocalSolution per cell, in the same order as `cells`
    """
    if workers <= 1 or len(cells) <= 1:
        return [solve_cell(gradients, cell, epsilon) for cell in cells]

    logger.debug(f"Solving {len(cells)} cells on {workers} threads")

    # map() preserves input order; leaving the block joins every task
    with ThreadPoolExecutor(max_workers=workers) as pool:
        solutions = list(pool.map(
            lambda cell: solve_cell(gradients, cell, epsilon),
            cells,
        ))

    return solutions
