"""
Error taxonomy for IGSS rule discovery.

- ConfigurationError: invalid parameters or unusable input data, raised
  before any sampling starts.
- SelectionNotConvergedError: a GSS pass hit its draw or time cap.
- LearningCancelledError: the caller's cancel callback asked to stop.

Errors of the prediction/evaluation collaborator are not wrapped; they
propagate unchanged.
"""


class IGSSError(Exception):
    """Base class for all IGSS errors."""


class ConfigurationError(IGSSError, ValueError):
    """Invalid learner parameters or input data."""


class SelectionNotConvergedError(IGSSError, RuntimeError):
    """A sequential sampling pass did not stop within its draw/time cap."""

    def __init__(self, message: str, *, draws: int = 0, total_weight: float = 0.0):
        """
        Initialize the error.

        Args:
            message: Human-readable error message
            draws: Number of examples drawn before giving up
            total_weight: Weight accumulated by the accepted draws
        """
        self.draws = int(draws)
        self.total_weight = float(total_weight)
        super().__init__(message)


class LearningCancelledError(IGSSError):
    """Raised when cooperative cancellation was requested."""
