"""
riverflow
=========

Grid optical flow estimation of river surface velocity from video frames.

Two frames of the same scene go in; a grid of calibrated surface-velocity
vectors and a short summary (average speed, dominant compass direction)
come out.

Components:
    - flow: Gradients, grid sampling, per-cell solve, calibration, metrics
    - stream: Frame model, image payload decoding, video pair sampling
    - monitor: Batch video analysis and periodic live analysis
    - observability: Flow overlay rendering
    - models: Flow field data models and serialized reports

Example:
    from riverflow.flow import GridFlowEstimator, EstimatorConfig

    estimator = GridFlowEstimator(EstimatorConfig(grid_size=10))
    estimate = estimator.analyze(previous_frame, current_frame)
    print(estimate.summary.average_speed, estimate.summary.dominant_direction)

The HTTP service is started from riverflow.main.
"""

__version__ = "0.1.0"
__author__ = "riverflow Project"

__all__ = [
    "__version__",
]
