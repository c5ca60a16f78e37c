"""
Stream Module
=============

Frame ingestion components.

This module provides the input layer for riverflow:
    - Frame: Immutable 3-channel frame (internal representation)
    - Image decoding: base64 JPEG/PNG payloads to Frames
    - Video sources: frame-pair sampling from files, streams and cameras

Example:
    from riverflow.stream import iter_frame_pairs

    for previous, current in iter_frame_pairs("river.mp4", frame_step=30):
        process(previous, current)
"""

from riverflow.stream.frame import Frame
from riverflow.stream.image_decoder import (
    ImageDecodeError,
    decode_frame,
    decode_image_bgr,
    encode_image_b64,
)
from riverflow.stream.video import (
    VideoFramePairSource,
    VideoSourceError,
    iter_frame_pairs,
    open_capture,
)


__all__ = [
    "Frame",
    "ImageDecodeError",
    "decode_frame",
    "decode_image_bgr",
    "encode_image_b64",
    "VideoFramePairSource",
    "VideoSourceError",
    "iter_frame_pairs",
    "open_capture",
]
