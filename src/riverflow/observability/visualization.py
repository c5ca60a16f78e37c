"""
Visualization Module
====================

Render flow fields as color-coded arrow overlays for display.

This module generates PURELY DESCRIPTIVE artifacts.
Rendering never feeds back into estimation.

Overlay Layout (per grid cell):
    - Semi-transparent tile, hue encodes normalized speed
      (blue = slow, red = fast)
    - Arrow from the cell center, length speed * arrow_scale,
      rotated by the flow direction
    - Speed label ("0.8") just above the center

Color Mapping:
    n = min(speed / speed_normalization, 1)
    RGB = (255 * n, 50, 255 * (1 - n))

GATED BY CONFIG FLAG. Zero cost when disabled.
"""

import logging
import math
import time
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from riverflow.models.flow import FlowField
from riverflow.stream.frame import Frame
from riverflow.stream.image_decoder import encode_image_b64


logger = logging.getLogger(__name__)


DEFAULT_SPEED_NORMALIZATION = 5.0
DEFAULT_ARROW_SCALE = 15.0
DEFAULT_HEAD_LENGTH = 10.0
DEFAULT_TILE_ALPHA = 0.3


def speed_to_color(
    speed: float,
    speed_normalization: float = DEFAULT_SPEED_NORMALIZATION,
) -> Tuple[int, int, int]:
    """
    Map a speed to a BGR color on the blue-to-red ramp.

    Args:
        speed: Calibrated speed (m/s)
        speed_normalization: Speed rendered as pure red

    Returns:
        (B, G, R) tuple of ints in [0, 255]
    """
    normalized = min(max(speed, 0.0) / speed_normalization, 1.0)
    red = int(round(normalized * 255))
    blue = int(round(255 - normalized * 255))
    return (blue, 50, red)


def _background(frame: Union[Frame, np.ndarray, None], field: FlowField) -> np.ndarray:
    if frame is None:
        return np.zeros((field.height, field.width, 3), dtype=np.uint8)
    pixels = frame.pixels if isinstance(frame, Frame) else np.asarray(frame)
    if pixels.ndim == 2:
        return cv2.cvtColor(pixels.astype(np.uint8), cv2.COLOR_GRAY2BGR)
    return np.array(pixels[:, :, :3], dtype=np.uint8)


def render_flow_overlay(
    frame: Union[Frame, np.ndarray, None],
    field: FlowField,
    speed_normalization: float = DEFAULT_SPEED_NORMALIZATION,
    arrow_scale: float = DEFAULT_ARROW_SCALE,
    head_length: float = DEFAULT_HEAD_LENGTH,
    tile_alpha: float = DEFAULT_TILE_ALPHA,
    show_labels: bool = True,
) -> np.ndarray:
    """
    Draw the flow field over a frame.

    Args:
        frame: Background frame (None = black canvas of the field size)
        field: Flow field to render
        speed_normalization: Speed mapped to full red
        arrow_scale: Arrow length in pixels per m/s
        head_length: Arrowhead length in pixels
        tile_alpha: Opacity of the per-cell speed tiles
        show_labels: Whether to print the speed of each cell

    Returns:
        New BGR image (H, W, 3), uint8. The input frame is not modified.
    """
    canvas = _background(frame, field)
    height, width = canvas.shape[:2]
    n = field.grid_size

    # Speed tiles
    tiles = canvas.copy()
    for vec in field:
        x0 = vec.col * width // n
        x1 = (vec.col + 1) * width // n
        y0 = vec.row * height // n
        y1 = (vec.row + 1) * height // n
        cv2.rectangle(
            tiles,
            (x0, y0),
            (max(x0, x1 - 1), max(y0, y1 - 1)),
            speed_to_color(vec.speed, speed_normalization),
            thickness=-1,
        )
    canvas = cv2.addWeighted(tiles, tile_alpha, canvas, 1.0 - tile_alpha, 0.0)

    # Arrows and labels
    for vec in field:
        color = speed_to_color(vec.speed, speed_normalization)
        length = vec.speed * arrow_scale
        start = (int(vec.x), int(vec.y))

        if length >= 1.0:
            end = (
                int(round(vec.x + math.cos(vec.direction) * length)),
                int(round(vec.y + math.sin(vec.direction) * length)),
            )
            cv2.arrowedLine(
                canvas,
                start,
                end,
                color,
                thickness=2,
                line_type=cv2.LINE_AA,
                tipLength=min(1.0, head_length / length),
            )

        if show_labels:
            text = f"{vec.speed:.1f}"
            (text_w, _), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.35, 1)
            origin = (start[0] - text_w // 2, start[1] - 8)
            cv2.putText(canvas, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.35,
                        (0, 0, 0), 2, cv2.LINE_AA)
            cv2.putText(canvas, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.35,
                        (255, 255, 255), 1, cv2.LINE_AA)

    return canvas


class FlowVisualizer:
    """
    Generate flow overlays for display.

    GATED: Does nothing when disabled.
    """

    def __init__(
        self,
        enabled: bool = False,
        speed_normalization: float = DEFAULT_SPEED_NORMALIZATION,
        arrow_scale: float = DEFAULT_ARROW_SCALE,
        tile_alpha: float = DEFAULT_TILE_ALPHA,
        show_labels: bool = True,
    ) -> None:
        """
        Initialize flow visualizer.

        Args:
            enabled: Whether rendering is enabled
            speed_normalization: Speed mapped to full red
            arrow_scale: Arrow length in pixels per m/s
            tile_alpha: Opacity of the per-cell speed tiles
            show_labels: Whether to print per-cell speeds
        """
        self.enabled = enabled
        self.speed_normalization = speed_normalization
        self.arrow_scale = arrow_scale
        self.tile_alpha = tile_alpha
        self.show_labels = show_labels

        if enabled:
            logger.info(
                f"FlowVisualizer enabled: "
                f"normalization={speed_normalization}, arrow_scale={arrow_scale}"
            )
        else:
            logger.info("FlowVisualizer disabled (zero cost)")

    @property
    def is_enabled(self) -> bool:
        """Check if rendering is enabled."""
        return self.enabled

    def render(
        self,
        frame: Union[Frame, np.ndarray, None],
        field: FlowField,
    ) -> Optional[np.ndarray]:
        """
        Render the overlay, or return None when disabled.
        """
        if not self.enabled:
            return None

        start_time = time.time()
        image = render_flow_overlay(
            frame,
            field,
            speed_normalization=self.speed_normalization,
            arrow_scale=self.arrow_scale,
            tile_alpha=self.tile_alpha,
            show_labels=self.show_labels,
        )

        elapsed_ms = (time.time() - start_time) * 1000
        if elapsed_ms > 50:
            logger.warning(f"Overlay rendering took {elapsed_ms:.1f}ms (>50ms threshold)")

        return image

    def render_png_b64(
        self,
        frame: Union[Frame, np.ndarray, None],
        field: FlowField,
    ) -> Optional[str]:
        """Render the overlay as a base64 PNG, or None when disabled."""
        image = self.render(frame, field)
        if image is None:
            return None
        return encode_image_b64(image, ".png")
