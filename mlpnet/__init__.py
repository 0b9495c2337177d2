"""mlpnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.errors import (
    ConfigurationError,
    ExternalOptimizerError,
    MLPError,
    NumericalInstabilityError,
    TrainingStallWarning,
)
from .core.network import Network
from .models import MLPClassifier, MLPRegressor
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "ConfigurationError",
    "ExternalOptimizerError",
    "MLPClassifier",
    "MLPError",
    "MLPRegressor",
    "Network",
    "NumericalInstabilityError",
    "Trainer",
    "TrainingStallWarning",
    "activations",
    "load_preset",
    "presets",
    "run_pipeline",
    "types",
]
