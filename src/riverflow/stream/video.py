"""
Video Frame Sources
===================

Frame-pair sampling from video files, streams and cameras via OpenCV.

This module provides:
    - iter_frame_pairs: batch sampling of (previous, current) pairs from a video
    - VideoFramePairSource: on-demand pair capture for periodic live analysis

Design Rules:
    - Produces Frames only; never runs the estimator
    - Captures are released on every exit path
"""

import logging
from typing import Iterator, Optional, Tuple, Union

import cv2
import numpy as np

from riverflow.stream.frame import Frame


logger = logging.getLogger(__name__)


VideoSource = Union[str, int]
FramePair = Tuple[Frame, Frame]


class VideoSourceError(Exception):
    """Raised when a video source cannot be opened."""
    pass


def open_capture(source: VideoSource) -> cv2.VideoCapture:
    """
    Open a video file, stream URL or camera index.

    Raises:
        VideoSourceError: If OpenCV cannot open the source
    """
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        cap.release()
        raise VideoSourceError(f"Could not open video source: {source!r}")
    return cap


def _to_frame(pixels: np.ndarray, frame_id: int, fps: float) -> Frame:
    timestamp = frame_id / fps if fps > 0 else None
    return Frame(pixels=pixels, frame_id=frame_id, timestamp=timestamp)


def iter_frame_pairs(
    source: VideoSource,
    frame_step: int = 15,
    frame_gap: int = 1,
    max_pairs: Optional[int] = None,
) -> Iterator[FramePair]:
    """
    Sample (previous, current) frame pairs from a video.

    A pair starts every `frame_step` frames; its second frame lies
    `frame_gap` frames after the first.

    Args:
        source: Video path, stream URL or camera index
        frame_step: Frames between pair starts (>= 1)
        frame_gap: Frames between the two frames of a pair (>= 1)
        max_pairs: Stop after this many pairs (None = whole video)

    Yields:
        (previous, current) Frame tuples

    Raises:
        VideoSourceError: If the source cannot be opened
        ValueError: If frame_step or frame_gap < 1
    """
    if frame_step < 1 or frame_gap < 1:
        raise ValueError(
            f"frame_step and frame_gap must be >= 1, got {frame_step}, {frame_gap}"
        )

    cap = open_capture(source)
    fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
    logger.info(
        f"Sampling frame pairs from {source!r}: "
        f"fps={fps:.2f}, step={frame_step}, gap={frame_gap}"
    )

    pending: Optional[Frame] = None
    emitted = 0
    frame_idx = 0

    try:
        while max_pairs is None or emitted < max_pairs:
            ret, pixels = cap.read()
            if not ret:
                break

            if pending is not None and frame_idx == pending.frame_id + frame_gap:
                yield pending, _to_frame(pixels, frame_idx, fps)
                emitted += 1
                pending = None

            if pending is None and frame_idx % frame_step == 0:
                pending = _to_frame(pixels, frame_idx, fps)

            frame_idx += 1
    finally:
        cap.release()

    logger.info(f"Sampled {emitted} frame pairs from {frame_idx} frames")


class VideoFramePairSource:
    """
    On-demand frame-pair capture from an open video source.

    Each call to read_pair() grabs the next frame and the frame
    `frame_gap` positions after it. Used by the live monitor, which
    calls it once per timer tick.

    Example:
        source = VideoFramePairSource("rtsp://camera/stream")
        pair = source.read_pair()
        source.close()
    """

    def __init__(self, source: VideoSource, frame_gap: int = 1) -> None:
        """
        Initialize the source.

        Args:
            source: Video path, stream URL or camera index
            frame_gap: Frames between the two frames of a pair

        Raises:
            ValueError: If frame_gap < 1
        """
        if frame_gap < 1:
            raise ValueError(f"frame_gap must be >= 1, got {frame_gap}")

        self.source = source
        self.frame_gap = frame_gap
        self._cap: Optional[cv2.VideoCapture] = None
        self._frame_idx = 0
        self._fps = 0.0

    def _ensure_open(self) -> cv2.VideoCapture:
        if self._cap is None:
            self._cap = open_capture(self.source)
            self._fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
            logger.info(f"Opened live source {self.source!r} (fps={self._fps:.2f})")
        return self._cap

    def _read(self) -> Optional[Frame]:
        ret, pixels = self._ensure_open().read()
        if not ret:
            return None
        frame = _to_frame(pixels, self._frame_idx, self._fps)
        self._frame_idx += 1
        return frame

    def read_pair(self) -> Optional[FramePair]:
        """
        Capture the next frame pair.

        Returns:
            (previous, current), or None if the source ran dry

        Raises:
            VideoSourceError: If the source cannot be opened
        """
        previous = self._read()
        if previous is None:
            return None

        current = None
        for _ in range(self.frame_gap):
            current = self._read()
            if current is None:
                return None

        return previous, current

    def close(self) -> None:
        """Release the underlying capture."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info(f"Closed live source {self.source!r}")
