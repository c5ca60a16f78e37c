"""
Flow Field Models
=================

Data models for the per-cell vector field and its summary.

FlowField:
    Row-major collection of FlowVector, exactly grid_size^2 entries,
    produced atomically from one frame pair.

FlowSummary:
    Scalar statistics consumed by reporting layers.
    flow_magnitude is the same scalar as average_speed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple

import numpy as np


class CompassDirection(str, Enum):
    """
    Eight compass sectors, indexed counter-clockwise from East.

    The index order matches the sector formula used by the aggregator:
        round(((angle + pi) mod 2pi) / (pi / 4)) mod 8
    """

    EAST = "East"
    NORTHEAST = "Northeast"
    NORTH = "North"
    NORTHWEST = "Northwest"
    WEST = "West"
    SOUTHWEST = "Southwest"
    SOUTH = "South"
    SOUTHEAST = "Southeast"

    @classmethod
    def from_index(cls, index: int) -> "CompassDirection":
        """Sector for an index in 0..7 (wraps)."""
        return list(cls)[index % 8]


@dataclass(frozen=True, slots=True)
class FlowVector:
    """
    Motion estimate for one grid cell.

    Attributes:
        row: Grid row index
        col: Grid column index
        x: Cell center x (pixels)
        y: Cell center y (pixels)
        u: Raw horizontal displacement (pixels/frame)
        v: Raw vertical displacement (pixels/frame)
        speed: Calibrated speed (m/s), in [0, max_speed]
        direction: atan2(v, u) in radians
        ill_conditioned: Whether the zero-motion fallback was used
    """

    row: int
    col: int
    x: int
    y: int
    u: float
    v: float
    speed: float
    direction: float
    ill_conditioned: bool = False

    def to_dict(self) -> dict:
        """Export as dictionary for serialization."""
        return {
            "row": self.row,
            "col": self.col,
            "x": self.x,
            "y": self.y,
            "u": round(self.u, 4),
            "v": round(self.v, 4),
            "speed": round(self.speed, 4),
            "direction": round(self.direction, 4),
            "ill_conditioned": self.ill_conditioned,
        }


@dataclass(frozen=True, slots=True)
class FlowField:
    """
    Grid of flow vectors for one frame pair.

    Attributes:
        vectors: grid_size^2 vectors in row-major order
        grid_size: Cells per side
        width: Source frame width
        height: Source frame height
    """

    vectors: Tuple[FlowVector, ...]
    grid_size: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if len(self.vectors) != self.grid_size * self.grid_size:
            raise ValueError(
                f"FlowField needs {self.grid_size ** 2} vectors, "
                f"got {len(self.vectors)}"
            )

    def __len__(self) -> int:
        return len(self.vectors)

    def __iter__(self) -> Iterator[FlowVector]:
        return iter(self.vectors)

    def at(self, row: int, col: int) -> FlowVector:
        """Vector for grid cell (row, col)."""
        return self.vectors[row * self.grid_size + col]

    @property
    def speeds(self) -> np.ndarray:
        """Calibrated speeds as a (grid_size, grid_size) array."""
        return self._grid("speed")

    @property
    def directions(self) -> np.ndarray:
        """Directions (radians) as a (grid_size, grid_size) array."""
        return self._grid("direction")

    @property
    def u(self) -> np.ndarray:
        """Raw horizontal displacement grid."""
        return self._grid("u")

    @property
    def v(self) -> np.ndarray:
        """Raw vertical displacement grid."""
        return self._grid("v")

    @property
    def ill_conditioned_count(self) -> int:
        """Number of cells that fell back to zero motion."""
        return sum(1 for vec in self.vectors if vec.ill_conditioned)

    def _grid(self, attr: str) -> np.ndarray:
        values = np.array([getattr(vec, attr) for vec in self.vectors], dtype=np.float64)
        return values.reshape(self.grid_size, self.grid_size)


@dataclass(frozen=True, slots=True)
class FlowSummary:
    """
    Aggregate statistics over a FlowField.

    Attributes:
        average_speed: Mean calibrated speed (m/s)
        flow_magnitude: Reported flow magnitude (equals average_speed)
        dominant_direction: Circular-mean direction bucketed to 8 sectors
        mean_direction: Circular mean of all directions (radians)
        max_speed: Largest cell speed (m/s)
        active_cells: Cells with non-zero displacement
        direction_coherence: Circular resultant length in [0, 1]
    """

    average_speed: float
    flow_magnitude: float
    dominant_direction: CompassDirection
    mean_direction: float
    max_speed: float
    active_cells: int
    direction_coherence: float

    def __repr__(self) -> str:
        return (
            f"FlowSummary(avg={self.average_speed:.4f}, "
            f"dir={self.dominant_direction.value}, "
            f"active={self.active_cells})"
        )

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "average_speed": round(self.average_speed, 4),
            "flow_magnitude": round(self.flow_magnitude, 4),
            "dominant_direction": self.dominant_direction.value,
            "mean_direction": round(self.mean_direction, 4),
            "max_speed": round(self.max_speed, 4),
            "active_cells": self.active_cells,
            "direction_coherence": round(self.direction_coherence, 4),
        }
