"""
Errors
======

Exception hierarchy for the riverflow estimator.

Error Policy:
    - DimensionMismatchError and InvalidConfigError are fatal for the call.
      No partial FlowField is ever returned.
    - Ill-conditioned windows are NOT errors. The solver emits a zero
      vector for that cell and the rest of the field computes normally.
"""


class FlowEstimationError(Exception):
    """Base class for all estimator failures."""
    pass


class DimensionMismatchError(FlowEstimationError):
    """Raised when the two frames of a pair differ in width or height."""
    
    def __init__(self, shape_a: tuple, shape_b: tuple) -> None:
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)
        super().__init__(
            f"Frame dimensions must match. Got: "
            f"{self.shape_a} vs {self.shape_b}"
        )


class InvalidConfigError(FlowEstimationError):
    """Raised when the estimator configuration is degenerate."""
    pass


class InvalidFrameError(FlowEstimationError):
    """Raised when a frame is not an (H, W, 3) pixel buffer."""
    pass
