"""
Image Gradients
===============

Grayscale conversion and spatial/temporal derivatives for flow solving.

Spatial gradients are computed on the REFERENCE (previous) frame with
fixed 3x3 Sobel kernels. The temporal gradient is the plain difference
between the current and the reference intensity.

Kernels (applied as correlation, same-size output):
    dx = [[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]]
    dy = [[-1, -2, -1], [0, 0, 0], [1, 2, 1]]

Padding:
    "zero" pads the border with 0 (default)
    "edge" replicates the border pixels
"""

from dataclasses import dataclass
from typing import Union

import cv2
import numpy as np

from riverflow.errors import DimensionMismatchError, InvalidFrameError
from riverflow.stream.frame import Frame


SOBEL_X = np.array(
    [[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]],
    dtype=np.float64,
)

SOBEL_Y = np.array(
    [[-1, -2, -1], [0, 0, 0], [1, 2, 1]],
    dtype=np.float64,
)

BORDER_MODES = {
    "zero": cv2.BORDER_CONSTANT,
    "edge": cv2.BORDER_REPLICATE,
}


@dataclass(frozen=True, slots=True)
class GradientField:
    """
    Spatial and temporal gradients of a frame pair.

    Attributes:
        dx: Horizontal gradient of the reference frame (H, W)
        dy: Vertical gradient of the reference frame (H, W)
        dt: Temporal difference current - reference (H, W)
    """

    dx: np.ndarray
    dy: np.ndarray
    dt: np.ndarray

    @property
    def shape(self) -> tuple:
        """(height, width) shared by all three arrays."""
        return self.dx.shape


def to_intensity(frame: Union[Frame, np.ndarray]) -> np.ndarray:
    """
    Reduce a 3-channel frame to a single-channel intensity field.

    Each output cell is the arithmetic mean of the three channel values.

    Args:
        frame: Frame or (H, W, 3) array

    Returns:
        Intensity field (H, W), float64, read-only

    Raises:
        InvalidFrameError: If the input is not (H, W, 3)
    """
    pixels = frame.pixels if isinstance(frame, Frame) else np.asarray(frame)

    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise InvalidFrameError(
            f"Expected (H, W, 3) pixel data. Got shape: {pixels.shape}"
        )

    intensity = pixels.astype(np.float64).mean(axis=2)
    intensity.setflags(write=False)
    return intensity


def compute_gradients(
    reference: np.ndarray,
    current: np.ndarray,
    padding: str = "zero",
) -> GradientField:
    """
    Compute dx, dy of the reference field and dt between the two fields.

    Args:
        reference: Intensity field of the previous frame (H, W)
        current: Intensity field of the current frame (H, W)
        padding: Border handling, "zero" or "edge"

    Returns:
        GradientField with arrays of the same shape as the inputs

    Raises:
        DimensionMismatchError: If the two fields differ in shape
        ValueError: If padding is unknown
    """
    if reference.shape != current.shape:
        raise DimensionMismatchError(reference.shape, current.shape)

    if padding not in BORDER_MODES:
        raise ValueError(
            f"Unknown padding '{padding}', expected one of {sorted(BORDER_MODES)}"
        )
    border = BORDER_MODES[padding]

    ref = np.array(reference, dtype=np.float64)
    cur = np.array(current, dtype=np.float64)

    dx = cv2.filter2D(ref, cv2.CV_64F, SOBEL_X, borderType=border)
    dy = cv2.filter2D(ref, cv2.CV_64F, SOBEL_Y, borderType=border)
    dt = cur - ref

    return GradientField(dx=dx, dy=dy, dt=dt)
