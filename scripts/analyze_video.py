#!/usr/bin/env python3
"""
Batch Video Analysis Script
===========================

Standalone script to estimate surface flow over a recorded video.

This script:
    1. Samples frame pairs from the video every --frame-step frames
    2. Runs the grid flow estimator on each pair
    3. Logs progress every --log-every pairs
    4. Prints the aggregate report as JSON

Usage:
    python scripts/analyze_video.py river.mp4
    python scripts/analyze_video.py river.mp4 --grid-size 8 --calibration-factor 0.3
    python scripts/analyze_video.py river.mp4 --max-pairs 20 --output report.json
"""

import argparse
import json
import logging
import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from riverflow.config import load_config
from riverflow.errors import FlowEstimationError
from riverflow.flow import GridFlowEstimator
from riverflow.monitor import analyze_video
from riverflow.stream import VideoSourceError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Estimate river surface velocity over a video"
    )
    parser.add_argument(
        "source",
        type=str,
        help="Video path, stream URL or camera index",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config.yaml (default: search common locations)",
    )
    parser.add_argument("--grid-size", type=int, default=None, help="Cells per side")
    parser.add_argument("--window-size", type=int, default=None, help="Window side (pixels)")
    parser.add_argument(
        "--calibration-factor",
        type=float,
        default=None,
        help="Pixel displacement to m/s scale",
    )
    parser.add_argument("--max-speed", type=float, default=None, help="Speed clamp (m/s)")
    parser.add_argument("--workers", type=int, default=None, help="Solver threads")
    parser.add_argument(
        "--frame-step",
        type=int,
        default=None,
        help="Frames between sampled pairs",
    )
    parser.add_argument(
        "--frame-gap",
        type=int,
        default=None,
        help="Frames between the two frames of a pair",
    )
    parser.add_argument(
        "--max-pairs",
        type=int,
        default=None,
        help="Stop after this many pairs",
    )
    parser.add_argument(
        "--log-every",
        type=int,
        default=10,
        help="Pairs between progress reports (default: 10)",
    )
    parser.add_argument(
        "--include-vectors",
        action="store_true",
        help="Include every cell of every pair in the report",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the JSON report here instead of stdout",
    )

    args = parser.parse_args()

    settings = load_config(args.config)
    config = settings.estimator.to_estimator_config().with_overrides(
        grid_size=args.grid_size,
        window_size=args.window_size,
        calibration_factor=args.calibration_factor,
        max_speed=args.max_speed,
        workers=args.workers,
    )

    source = int(args.source) if args.source.isdigit() else args.source

    try:
        estimator = GridFlowEstimator(config)
        report = analyze_video(
            source,
            estimator,
            frame_step=args.frame_step or settings.batch.frame_step,
            frame_gap=args.frame_gap or settings.batch.frame_gap,
            max_pairs=args.max_pairs or settings.batch.max_pairs,
            include_vectors=args.include_vectors,
            log_every_n_pairs=args.log_every,
        )
    except (VideoSourceError, FlowEstimationError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        sys.exit(1)

    payload = json.dumps(report.model_dump(mode="json"), indent=2)
    if args.output:
        with open(args.output, "w") as f:
            f.write(payload)
        logger.info(f"Report written to {args.output}")
    else:
        print(payload)

    # Exit with appropriate code
    sys.exit(0 if report.pair_count > 0 else 1)


if __name__ == "__main__":
    main()
