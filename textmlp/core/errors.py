"""Exception hierarchy raised by the network engine."""

from __future__ import annotations


class NetworkError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(NetworkError, ValueError):
    """Invalid topology, activation name or snapshot contents."""


class LayerIndexError(ConfigurationError, IndexError):
    """A transition or hidden-layer index is out of range."""


class InputError(NetworkError, ValueError):
    """Malformed training batch or feature/target vector."""


class UnsupportedOperation(NetworkError):
    """Operation is not defined for the requested function."""


class InvariantViolation(NetworkError, RuntimeError):
    """Internal state contradicts the network invariants."""


class NotInitializedError(NetworkError, RuntimeError):
    """Weights have not been initialised or loaded yet."""


__all__ = [
    "NetworkError",
    "ConfigurationError",
    "LayerIndexError",
    "InputError",
    "UnsupportedOperation",
    "InvariantViolation",
    "NotInitializedError",
]
