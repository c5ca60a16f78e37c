"""
Test Configuration
==================

Pytest fixtures and test configuration for riverflow.

Synthetic frames use a two-axis sinusoidal "plaid" texture. Unlike
single-axis stripes it has gradient energy in both directions, so every
interior window yields a well-conditioned solve.
"""

import numpy as np
import pytest


PLAID_PERIOD = 20


def make_plaid(
    width: int = 200,
    height: int = 200,
    shift_x: int = 0,
    shift_y: int = 0,
    period: int = PLAID_PERIOD,
) -> np.ndarray:
    """Build a (H, W, 3) uint8 plaid frame, optionally rolled by whole pixels."""
    k = 2 * np.pi / period
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    intensity = 127.5 + 60.0 * np.sin(k * xs) + 60.0 * np.sin(k * ys)
    gray = np.round(intensity).astype(np.uint8)
    gray = np.roll(gray, shift=(shift_y, shift_x), axis=(0, 1))
    return np.repeat(gray[:, :, None], 3, axis=2)


def make_solid(width: int = 200, height: int = 200, value: int = 128) -> np.ndarray:
    """Build a textureless (H, W, 3) uint8 frame."""
    return np.full((height, width, 3), value, dtype=np.uint8)


@pytest.fixture
def plaid_factory():
    """Provide the plaid frame builder."""
    return make_plaid


@pytest.fixture
def still_pair():
    """Two identical textured frames."""
    frame = make_plaid()
    return frame, frame.copy()


@pytest.fixture
def rightward_pair():
    """Textured frame pair where the scene moves one pixel to the right."""
    return make_plaid(), make_plaid(shift_x=1)


@pytest.fixture
def solid_pair():
    """Two identical textureless frames."""
    return make_solid(), make_solid()
