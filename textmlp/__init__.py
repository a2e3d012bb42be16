"""textmlp public API."""

from .core import activations, losses  # noqa: F401
from .core.errors import (
    ConfigurationError,
    InputError,
    InvariantViolation,
    LayerIndexError,
    NetworkError,
    NotInitializedError,
    UnsupportedOperation,
)
from .core.network import NeuralNetwork
from .core.types import Prediction, Sample
from .data import Corpus, Vocabulary
from .training import Trainer, resolve_config, run_prediction, run_training

__all__ = [
    "ConfigurationError",
    "Corpus",
    "InputError",
    "InvariantViolation",
    "LayerIndexError",
    "NetworkError",
    "NeuralNetwork",
    "NotInitializedError",
    "Prediction",
    "Sample",
    "Trainer",
    "UnsupportedOperation",
    "Vocabulary",
    "activations",
    "losses",
    "resolve_config",
    "run_prediction",
    "run_training",
]
