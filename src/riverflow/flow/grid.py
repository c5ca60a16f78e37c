"""
Grid Sampler
============

Partitions a frame into a fixed N x N lattice of sample points.

Cell (i, j) is centered at:
    x = floor((j + 0.5) * width / grid_size)
    y = floor((i + 0.5) * height / grid_size)

and owns a square window of `window_size` pixels centered on it, clamped
so it never reads outside [0, width) x [0, height). Windows near the
border are therefore smaller than window_size x window_size.
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True, slots=True)
class GridCell:
    """
    One sample point of the lattice.

    Window bounds are half-open: rows y0..y1-1, columns x0..x1-1.
    """

    row: int
    col: int
    x: int
    y: int
    x0: int
    x1: int
    y0: int
    y1: int

    @property
    def window_area(self) -> int:
        """Number of pixels inside the clamped window."""
        return (self.x1 - self.x0) * (self.y1 - self.y0)


def build_grid(
    width: int,
    height: int,
    grid_size: int = 10,
    window_size: int = 15,
) -> List[GridCell]:
    """
    Build the sample lattice for a frame, in row-major order.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels
        grid_size: Number of cells per side (>= 1)
        window_size: Side of each cell window in pixels (>= 1)

    Returns:
        grid_size * grid_size cells
    """
    half = window_size // 2
    cells = []

    for i in range(grid_size):
        y = (2 * i + 1) * height // (2 * grid_size)
        for j in range(grid_size):
            x = (2 * j + 1) * width // (2 * grid_size)
            cells.append(GridCell(
                row=i,
                col=j,
                x=x,
                y=y,
                x0=max(0, x - half),
                x1=min(width, x + half + 1),
                y0=max(0, y - half),
                y1=min(height, y + half + 1),
            ))

    return cells
