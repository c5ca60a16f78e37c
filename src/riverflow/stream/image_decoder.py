"""
Image Decoder
=============

Decoding of base64 image payloads into Frames, and the reverse.

Design Rules:
    - This is the ONLY place in the codebase that decodes image payloads
    - Accepts bare base64 or data URLs ("data:image/jpeg;base64,...")
    - Validates shape and dtype
    - Fails fast on corrupt payloads
"""

import base64
import binascii
import logging
from typing import Optional

import cv2
import numpy as np

from riverflow.stream.frame import Frame


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image decoding fails."""
    pass


def _strip_data_url(payload: str) -> str:
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


def decode_image_bgr(payload: str, label: str = "image") -> np.ndarray:
    """
    Decode a base64 JPEG/PNG payload to a BGR numpy array.

    Args:
        payload: Base64 string or data URL
        label: Name used in error messages

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    try:
        image_bytes = base64.b64decode(_strip_data_url(payload), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Base64 decode failed for {label}: {e}") from e

    nparr = np.frombuffer(image_bytes, np.uint8)
    if nparr.size == 0:
        raise ImageDecodeError(f"Empty payload for {label}")

    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ImageDecodeError(
            f"Failed to decode {label}: cv2.imdecode returned None"
        )

    if bgr.ndim != 3 or bgr.shape[2] != 3:
        raise ImageDecodeError(f"Invalid image shape for {label}: {bgr.shape}")

    if bgr.dtype != np.uint8:
        raise ImageDecodeError(f"Invalid dtype for {label}: {bgr.dtype}")

    return bgr


def decode_frame(
    payload: str,
    frame_id: Optional[int] = None,
    timestamp: Optional[float] = None,
    label: str = "image",
) -> Frame:
    """
    Decode a base64 payload straight into an immutable Frame.

    Raises:
        ImageDecodeError: If decoding fails or image is invalid
    """
    return Frame(
        pixels=decode_image_bgr(payload, label=label),
        frame_id=frame_id,
        timestamp=timestamp,
    )


def encode_image_b64(image: np.ndarray, ext: str = ".png") -> str:
    """
    Encode an image array as base64 (no data-URL prefix).

    Args:
        image: (H, W, 3) or (H, W) uint8 array
        ext: Container format understood by cv2.imencode

    Returns:
        Base64 string

    Raises:
        ImageDecodeError: If encoding fails
    """
    ok, buffer = cv2.imencode(ext, np.ascontiguousarray(image))
    if not ok:
        raise ImageDecodeError(f"cv2.imencode failed for format {ext}")
    return base64.b64encode(buffer.tobytes()).decode("ascii")
