"""
Data Models
===========

Models for flow fields and their serialized reports.

Models:
    Flow:
        - FlowVector: Per-cell displacement, speed and direction
        - FlowField: Row-major grid of FlowVectors
        - FlowSummary: Average speed, magnitude, dominant direction
        - CompassDirection: Eight compass sectors

    Output:
        - FlowReport: Serialized result for one frame pair
        - BatchReport: Serialized result for a sampled video
"""

from riverflow.models.flow import CompassDirection, FlowField, FlowSummary, FlowVector
from riverflow.models.output import BatchReport, FlowReport, SummaryPayload, VectorPayload

__all__ = [
    # Flow
    "CompassDirection",
    "FlowVector",
    "FlowField",
    "FlowSummary",
    # Output
    "SummaryPayload",
    "VectorPayload",
    "FlowReport",
    "BatchReport",
]
