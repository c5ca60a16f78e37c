"""
Report Output Models
====================

This module defines the serialized output contract for flow analysis.

Output Contract:
    {
        "timestamp": 1770500938.284,
        "previous_frame_id": 120,
        "current_frame_id": 121,
        "width": 640,
        "height": 360,
        "grid_size": 10,
        "summary": {
            "average_speed": 0.82,
            "flow_magnitude": 0.82,
            "dominant_direction": "East",
            ...
        },
        "vectors": [{"row": 0, "col": 0, "u": ..., "speed": ...}, ...],
        "ill_conditioned_cells": 12,
        "overlay_png": "..."
    }

Design Rules:
    - Reports are built from a completed FlowEstimate only
    - `overlay_png` is display-only and optional
"""

import time
from typing import List, Optional

from pydantic import BaseModel, Field

from riverflow.models.flow import CompassDirection, FlowSummary, FlowVector
from riverflow.stream.frame import Frame


class VectorPayload(BaseModel):
    """Serialized per-cell flow vector."""

    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    x: int = Field(..., ge=0, description="Cell center x (pixels)")
    y: int = Field(..., ge=0, description="Cell center y (pixels)")
    u: float = Field(..., description="Raw horizontal displacement (pixels/frame)")
    v: float = Field(..., description="Raw vertical displacement (pixels/frame)")
    speed: float = Field(..., ge=0.0, description="Calibrated speed (m/s)")
    direction: float = Field(..., description="atan2(v, u) in radians")
    ill_conditioned: bool = False

    @classmethod
    def from_vector(cls, vector: FlowVector) -> "VectorPayload":
        return cls.model_validate(vector.to_dict())


class SummaryPayload(BaseModel):
    """
    Serialized flow summary.

    Attributes:
        average_speed: Mean calibrated speed (m/s)
        flow_magnitude: Same scalar as average_speed
        dominant_direction: One of 8 compass sectors
    """

    average_speed: float = Field(..., ge=0.0)
    flow_magnitude: float = Field(..., ge=0.0)
    dominant_direction: CompassDirection
    mean_direction: float
    max_speed: float = Field(..., ge=0.0)
    active_cells: int = Field(..., ge=0)
    direction_coherence: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_summary(cls, summary: FlowSummary) -> "SummaryPayload":
        return cls.model_validate(summary.to_dict())


class FlowReport(BaseModel):
    """
    Complete analysis result for one frame pair.
    """

    timestamp: float = Field(..., description="UNIX time the estimate was produced")
    previous_frame_id: Optional[int] = None
    current_frame_id: Optional[int] = None
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    grid_size: int = Field(..., ge=1)
    summary: SummaryPayload
    vectors: List[VectorPayload] = Field(default_factory=list)
    ill_conditioned_cells: int = Field(default=0, ge=0)
    overlay_png: Optional[str] = Field(
        default=None,
        description="Base64 PNG of the flow overlay, when requested",
    )

    @classmethod
    def from_estimate(
        cls,
        estimate,
        previous: Optional[Frame] = None,
        current: Optional[Frame] = None,
        timestamp: Optional[float] = None,
        include_vectors: bool = True,
        overlay_png: Optional[str] = None,
    ) -> "FlowReport":
        """
        Build a report from a FlowEstimate.

        Args:
            estimate: Completed FlowEstimate (field + summary)
            previous: Previous frame, for frame-id metadata
            current: Current frame, for frame-id metadata
            timestamp: Report time (defaults to now)
            include_vectors: Whether to serialize every cell
            overlay_png: Optional base64 overlay image
        """
        field = estimate.field
        return cls(
            timestamp=time.time() if timestamp is None else timestamp,
            previous_frame_id=previous.frame_id if previous is not None else None,
            current_frame_id=current.frame_id if current is not None else None,
            width=field.width,
            height=field.height,
            grid_size=field.grid_size,
            summary=SummaryPayload.from_summary(estimate.summary),
            vectors=[VectorPayload.from_vector(vec) for vec in field] if include_vectors else [],
            ill_conditioned_cells=field.ill_conditioned_count,
            overlay_png=overlay_png,
        )


class BatchReport(BaseModel):
    """
    Aggregate result of analyzing sampled frame pairs from one video.

    Attributes:
        source: Video path or URL
        pair_count: Number of analyzed frame pairs
        average_speed: Mean of per-pair average speeds (m/s)
        dominant_direction: Circular mean over every moving cell of every pair
        pairs: Per-pair reports, in video order
    """

    source: str
    pair_count: int = Field(..., ge=0)
    average_speed: float = Field(..., ge=0.0)
    flow_magnitude: float = Field(..., ge=0.0)
    max_speed: float = Field(..., ge=0.0)
    dominant_direction: CompassDirection
    pairs: List[FlowReport] = Field(default_factory=list)
