"""
Observability Module
====================

Visualization of flow fields.

This module provides:
    - render_flow_overlay: Arrow + speed-tile overlay on a frame
    - FlowVisualizer: Config-gated overlay generator

DESIGN RULES:
    - Does NOT influence estimation
    - Zero cost when disabled
"""

from riverflow.observability.visualization import (
    FlowVisualizer,
    render_flow_overlay,
    speed_to_color,
)


__all__ = [
    "FlowVisualizer",
    "render_flow_overlay",
    "speed_to_color",
]
