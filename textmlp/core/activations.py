"""Activation registry for textmlp.

Every supported nonlinearity is a member of :class:`Activation`.  The
module-level dispatch table maps each member to its forward function, its
derivative, the value that derivative consumes (the activation output or the
pre-activation input) and the gain used to scale initial weights.

All functions accept scalars or numpy arrays.  Public entry points return a
``float`` when given a scalar and an ``ndarray`` otherwise.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import numpy as np

from .errors import ConfigurationError, UnsupportedOperation
from .types import Array

LEAKY_RELU_ALPHA = 0.01
ELU_ALPHA = 1.0
SOFTPLUS_LIMIT = 20.0

_GELU_COEF = 0.044715
_SQRT_2_OVER_PI = math.sqrt(2.0 / math.pi)


class DerivativeInput(str, enum.Enum):
    """Which cached value a derivative formula is evaluated on."""

    OUTPUT = "output"
    PRE_ACTIVATION = "pre_activation"


class Activation(str, enum.Enum):
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    LEAKY_RELU = "leaky_relu"
    ELU = "elu"
    SWISH = "swish"
    GELU = "gelu"
    SOFTPLUS = "softplus"
    SOFTMAX = "softmax"

    @classmethod
    def parse(cls, name: Union[str, "Activation"]) -> "Activation":
        """Resolve ``name`` (any accepted spelling) to a member."""

        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace("-", "_")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown activation function: {name!r}") from exc


_ALIASES: Dict[str, str] = {
    "leakyrelu": "leaky_relu",
    "lrelu": "leaky_relu",
    "silu": "swish",
    "logistic": "sigmoid",
}

ActivationName = Union[str, Activation]


# ----------------------------------------------------------------------------
# Forward functions


def sigmoid(x: Array) -> Array:
    x = np.asarray(x, dtype=np.float64)
    e = np.exp(-np.abs(x))
    return np.where(x >= 0, 1.0 / (1.0 + e), e / (1.0 + e))


def tanh(x: Array) -> Array:
    return np.tanh(np.asarray(x, dtype=np.float64))


def relu(x: Array) -> Array:
    return np.maximum(np.asarray(x, dtype=np.float64), 0.0)


def leaky_relu(x: Array, alpha: float = LEAKY_RELU_ALPHA) -> Array:
    x = np.asarray(x, dtype=np.float64)
    return np.where(x >= 0, x, alpha * x)


def elu(x: Array, alpha: float = ELU_ALPHA) -> Array:
    x = np.asarray(x, dtype=np.float64)
    return np.where(x >= 0, x, alpha * np.expm1(np.minimum(x, 0.0)))


def swish(x: Array) -> Array:
    x = np.asarray(x, dtype=np.float64)
    return x * sigmoid(x)


def _gelu_inner(x: Array) -> Array:
    return np.tanh(_SQRT_2_OVER_PI * (x + _GELU_COEF * x**3))


def gelu(x: Array) -> Array:
    """GELU, tanh approximation."""

    x = np.asarray(x, dtype=np.float64)
    return 0.5 * x * (1.0 + _gelu_inner(x))


def softplus(x: Array, limit: float = SOFTPLUS_LIMIT) -> Array:
    """``log(1 + e^x)`` with linear/exponential tails outside ``[-limit, limit]``."""

    x = np.asarray(x, dtype=np.float64)
    middle = np.log1p(np.exp(np.clip(x, -limit, limit)))
    low = np.exp(np.minimum(x, -limit))
    return np.where(x > limit, x, np.where(x < -limit, low, middle))


def softmax(x: Array) -> Array:
    """Numerically stable softmax over a whole vector."""

    x = np.atleast_1d(np.asarray(x, dtype=np.float64))
    if x.size == 0:
        return np.zeros(0, dtype=np.float64)
    e = np.exp(x - np.max(x))
    return e / np.sum(e)


# ----------------------------------------------------------------------------
# Derivatives


def sigmoid_derivative(a: Array) -> Array:
    return a * (1.0 - a)


def tanh_derivative(a: Array) -> Array:
    return 1.0 - a**2


def relu_derivative(z: Array) -> Array:
    return (z > 0).astype(np.float64)


def leaky_relu_derivative(z: Array, alpha: float = LEAKY_RELU_ALPHA) -> Array:
    return np.where(z >= 0, 1.0, alpha)


def elu_derivative(z: Array, alpha: float = ELU_ALPHA) -> Array:
    return np.where(z >= 0, 1.0, alpha * np.exp(np.minimum(z, 0.0)))


def swish_derivative(z: Array) -> Array:
    s = swish(z)
    return s + sigmoid(z) * (1.0 - s)


def gelu_derivative(z: Array) -> Array:
    t = _gelu_inner(z)
    return 0.5 * (1.0 + t) + 0.5 * z * (1.0 - t**2) * _SQRT_2_OVER_PI * (
        1.0 + 3.0 * _GELU_COEF * z**2
    )


def softplus_derivative(z: Array, limit: float = SOFTPLUS_LIMIT) -> Array:
    return np.where(z > limit, 1.0, sigmoid(z))


# ----------------------------------------------------------------------------
# Dispatch table


@dataclass(frozen=True)
class ActivationSpec:
    forward: Callable[[Array], Array]
    derivative: Optional[Callable[[Array], Array]]
    derivative_input: Optional[DerivativeInput]
    init_gain: float
    elementwise: bool = True


_TABLE: Dict[Activation, ActivationSpec] = {
    Activation.SIGMOID: ActivationSpec(sigmoid, sigmoid_derivative, DerivativeInput.OUTPUT, 1.0),
    Activation.TANH: ActivationSpec(tanh, tanh_derivative, DerivativeInput.OUTPUT, 1.0),
    Activation.RELU: ActivationSpec(relu, relu_derivative, DerivativeInput.PRE_ACTIVATION, 2.0),
    Activation.LEAKY_RELU: ActivationSpec(
        leaky_relu, leaky_relu_derivative, DerivativeInput.PRE_ACTIVATION, 2.0
    ),
    Activation.ELU: ActivationSpec(elu, elu_derivative, DerivativeInput.PRE_ACTIVATION, 2.0),
    Activation.SWISH: ActivationSpec(swish, swish_derivative, DerivativeInput.PRE_ACTIVATION, 2.0),
    Activation.GELU: ActivationSpec(gelu, gelu_derivative, DerivativeInput.PRE_ACTIVATION, 2.0),
    Activation.SOFTPLUS: ActivationSpec(
        softplus, softplus_derivative, DerivativeInput.PRE_ACTIVATION, 1.0
    ),
    # softmax is only differentiated through the cross-entropy shortcut
    Activation.SOFTMAX: ActivationSpec(softmax, None, None, 1.0, elementwise=False),
}


def get_spec(name: ActivationName) -> ActivationSpec:
    return _TABLE[Activation.parse(name)]


def _finish(result: Array, source: Array) -> Union[float, Array]:
    if source.ndim == 0:
        return float(result)
    return result


def apply(name: ActivationName, x) -> Union[float, Array]:
    """Apply activation ``name`` to ``x``.

    Softmax is applied to the vector as a whole; every other activation is
    applied elementwise.
    """

    spec = get_spec(name)
    values = np.asarray(x, dtype=np.float64)
    if not spec.elementwise:
        return spec.forward(values)
    return _finish(spec.forward(values), values)


def derivative_input_kind(name: ActivationName) -> DerivativeInput:
    """Return whether the derivative of ``name`` consumes its output or its input."""

    activation = Activation.parse(name)
    kind = _TABLE[activation].derivative_input
    if kind is None:
        raise UnsupportedOperation(
            f"{activation.value} has no standalone derivative; "
            "pair it with cross_entropy loss"
        )
    return kind


def apply_derivative(name: ActivationName, z, a) -> Union[float, Array]:
    """Evaluate the derivative of ``name`` given the cached ``z`` and ``a`` values."""

    activation = Activation.parse(name)
    kind = derivative_input_kind(activation)
    values = np.asarray(a if kind is DerivativeInput.OUTPUT else z, dtype=np.float64)
    derivative = _TABLE[activation].derivative
    return _finish(derivative(values), values)


def init_scale(name: ActivationName, fan_in: int) -> float:
    """Scale applied to uniform(-1, 1) initial weights for a layer with ``fan_in`` inputs."""

    if fan_in == 0:
        return 1.0
    return math.sqrt(get_spec(name).init_gain / fan_in)


__all__ = [
    "Activation",
    "ActivationSpec",
    "DerivativeInput",
    "apply",
    "apply_derivative",
    "derivative_input_kind",
    "get_spec",
    "init_scale",
    "softmax",
    "sigmoid",
    "tanh",
    "relu",
    "leaky_relu",
    "elu",
    "swish",
    "gelu",
    "softplus",
]
