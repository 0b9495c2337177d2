"""Exception types raised by the training engine."""

from __future__ import annotations


class MLPError(Exception):
    """Base class for all mlpnet errors."""


class ConfigurationError(MLPError, ValueError):
    """Unknown component name or mismatched shapes; raised before training starts."""


class NumericalInstabilityError(MLPError, FloatingPointError):
    """A loss, gradient or weight became NaN or infinite."""


class ExternalOptimizerError(MLPError, RuntimeError):
    """The external minimizer reported a failure.

    The network holds the best parameters seen during the run when this is
    raised.
    """

    def __init__(self, message: str, *, loss: float | None = None) -> None:
        super().__init__(message)
        self.loss = loss


class TrainingStallWarning(UserWarning):
    """The epoch loss stopped decreasing for ``max_epochs_without_progress`` epochs."""


__all__ = [
    "MLPError",
    "ConfigurationError",
    "NumericalInstabilityError",
    "ExternalOptimizerError",
    "TrainingStallWarning",
]
