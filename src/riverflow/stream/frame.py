"""
Frame Data Model
=================

Internal frame representation for the estimation pipeline.

This module defines the typed Frame class that is used as the interface
between frame sources (image decoder, video sampler, live capture) and
the flow estimator.

Design Rules:
    - This is the ONLY frame format passed to the estimator
    - Pixel data is copied on construction and marked read-only
    - 4-channel (RGBA/BGRA) input is accepted; the alpha plane is dropped
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from riverflow.errors import InvalidFrameError


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Immutable 3-channel video frame.

    Attributes:
        pixels: (H, W, 3) uint8 buffer, read-only
        frame_id: Optional source frame index
        timestamp: Optional capture time in seconds
    """

    pixels: np.ndarray = field(repr=False)
    frame_id: Optional[int] = None
    timestamp: Optional[float] = None

    def __post_init__(self) -> None:
        pixels = np.asarray(self.pixels)

        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise InvalidFrameError(
                f"Frame must be (H, W, 3) pixel data. Got shape: {pixels.shape}"
            )
        if pixels.dtype != np.uint8:
            raise InvalidFrameError(f"Frame must be uint8. Got: {pixels.dtype}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidFrameError(f"Frame must not be empty. Got shape: {pixels.shape}")

        owned = np.array(pixels[:, :, :3], dtype=np.uint8, copy=True)
        owned.setflags(write=False)
        object.__setattr__(self, "pixels", owned)

    @property
    def width(self) -> int:
        """Frame width in pixels."""
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        """Frame height in pixels."""
        return int(self.pixels.shape[0])

    @property
    def shape(self) -> tuple:
        """(height, width) of the frame."""
        return (self.height, self.width)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"size={self.width}x{self.height}, "
            f"timestamp={self.timestamp})"
        )
