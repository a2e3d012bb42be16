"""Core numerical primitives for textmlp."""

from . import activations, errors, losses, network, types
from .network import NeuralNetwork

__all__ = ["activations", "errors", "losses", "network", "types", "NeuralNetwork"]
