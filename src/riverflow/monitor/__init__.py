"""
Monitor Module
==============

Repeated flow estimation over video sources.

This module provides:
    - analyze_video: one estimate per sampled frame pair of a video
    - LiveFlowMonitor: periodic estimation of a live source (default 5 s)

Each estimate is independent and stateless; monitors only schedule
calls and collect reports.
"""

from riverflow.monitor.batch import analyze_video
from riverflow.monitor.live import FramePairSource, LiveFlowMonitor, LiveMonitorMetrics

__all__ = [
    "analyze_video",
    "FramePairSource",
    "LiveFlowMonitor",
    "LiveMonitorMetrics",
]
