"""
Visualization and Image Codec Tests
===================================

Tests for overlay rendering and base64 image payload handling.
"""

import base64

import numpy as np
import pytest

from riverflow.flow.estimator import estimate_flow
from riverflow.observability.visualization import (
    FlowVisualizer,
    render_flow_overlay,
    speed_to_color,
)
from riverflow.stream.image_decoder import (
    ImageDecodeError,
    decode_frame,
    decode_image_bgr,
    encode_image_b64,
)


class TestSpeedToColor:
    """Tests for the blue-to-red speed ramp."""

    def test_still_is_blue(self):
        assert speed_to_color(0.0) == (255, 50, 0)

    def test_full_speed_is_red(self):
        assert speed_to_color(5.0) == (0, 50, 255)

    def test_clamped_above_normalization(self):
        """Verify speeds beyond the normalization stay pure red."""
        assert speed_to_color(50.0, speed_normalization=5.0) == (0, 50, 255)


class TestRenderOverlay:
    """Tests for render_flow_overlay."""

    def test_output_matches_frame(self, rightward_pair):
        """Verify the overlay has the frame's shape and leaves it untouched."""
        previous, current = rightward_pair
        field = estimate_flow(previous, current)
        before = current.copy()

        overlay = render_flow_overlay(current, field)

        assert overlay.shape == current.shape
        assert overlay.dtype == np.uint8
        assert np.array_equal(current, before)
        assert not np.array_equal(overlay, current)

    def test_blank_canvas(self, still_pair):
        """Verify rendering without a frame uses the field's size."""
        field = estimate_flow(*still_pair)
        overlay = render_flow_overlay(None, field, show_labels=False)
        assert overlay.shape == (field.height, field.width, 3)


class TestFlowVisualizer:
    """Tests for the gated visualizer."""

    def test_disabled_returns_none(self, still_pair):
        """Verify a disabled visualizer does nothing."""
        field = estimate_flow(*still_pair)
        visualizer = FlowVisualizer(enabled=False)

        assert not visualizer.is_enabled
        assert visualizer.render(still_pair[1], field) is None
        assert visualizer.render_png_b64(still_pair[1], field) is None

    def test_enabled_renders_png(self, rightward_pair):
        """Verify an enabled visualizer emits a decodable PNG."""
        field = estimate_flow(*rightward_pair)
        visualizer = FlowVisualizer(enabled=True)

        payload = visualizer.render_png_b64(rightward_pair[1], field)

        assert payload is not None
        assert base64.b64decode(payload).startswith(b"\x89PNG")
        assert decode_image_bgr(payload).shape == (200, 200, 3)


class TestImageDecoder:
    """Tests for base64 image payloads."""

    def test_png_roundtrip_is_lossless(self, plaid_factory):
        """Verify PNG payloads decode to the encoded pixels."""
        pixels = plaid_factory(64, 48)
        decoded = decode_image_bgr(encode_image_b64(pixels, ".png"))
        assert np.array_equal(decoded, pixels)

    def test_data_url_prefix(self, plaid_factory):
        """Verify data URLs are accepted."""
        payload = "data:image/png;base64," + encode_image_b64(plaid_factory(32, 32))
        frame = decode_frame(payload, frame_id=3, timestamp=1.5)

        assert frame.shape == (32, 32)
        assert frame.frame_id == 3
        assert frame.timestamp == 1.5

    def test_invalid_base64(self):
        """Verify malformed base64 is rejected."""
        with pytest.raises(ImageDecodeError):
            decode_image_bgr("not base64 at all!!")

    def test_not_an_image(self):
        """Verify valid base64 of non-image bytes is rejected."""
        payload = base64.b64encode(b"definitely not a png").decode("ascii")
        with pytest.raises(ImageDecodeError):
            decode_image_bgr(payload, label="previous_image")

    def test_empty_payload(self):
        """Verify an empty payload is rejected."""
        with pytest.raises(ImageDecodeError):
            decode_image_bgr("")
