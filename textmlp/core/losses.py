"""Loss functions selectable for a whole network."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Dict, Union

import numpy as np

from .errors import InputError, UnsupportedOperation
from .types import Array, Vector

# Lower clamp for probabilities inside the cross-entropy log.
LOG_EPSILON = 1e-10

LossFn = Callable[[Array, Array], float]


class LossFunction(str, enum.Enum):
    MSE = "mse"
    CROSS_ENTROPY = "cross_entropy"

    @classmethod
    def parse(cls, name: Union[str, "LossFunction"]) -> "LossFunction":
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace("-", "_")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError as exc:
            raise UnsupportedOperation(f"Unsupported loss function: {name!r}") from exc


_ALIASES: Dict[str, str] = {
    "mean_squared_error": "mse",
    "ce": "cross_entropy",
    "crossentropy": "cross_entropy",
}


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning the scalar loss for one sample."""

    name: LossFunction
    fn: LossFn

    def __call__(self, target: Array, output: Array) -> float:
        return self.fn(target, output)


def _mse(target: Array, output: Array) -> float:
    return float(np.mean(np.square(target - output)))


def _cross_entropy(target: Array, output: Array) -> float:
    return float(-np.mean(target * np.log(np.maximum(output, LOG_EPSILON))))


_REGISTRY: Dict[LossFunction, Loss] = {
    LossFunction.MSE: Loss(LossFunction.MSE, _mse),
    LossFunction.CROSS_ENTROPY: Loss(LossFunction.CROSS_ENTROPY, _cross_entropy),
}


def get(name: Union[str, LossFunction]) -> Loss:
    return _REGISTRY[LossFunction.parse(name)]


def compute_loss(name: Union[str, LossFunction], target: Vector, output: Vector) -> float:
    """Return the loss of ``output`` against ``target`` averaged over components."""

    loss = get(name)
    target_arr = np.asarray(target, dtype=np.float64).reshape(-1)
    output_arr = np.asarray(output, dtype=np.float64).reshape(-1)
    if target_arr.shape != output_arr.shape:
        raise InputError(
            f"Target has {target_arr.size} values but output has {output_arr.size}"
        )
    if output_arr.size == 0:
        raise InputError("Cannot compute a loss over empty vectors")
    return loss(target_arr, output_arr)


__all__ = ["LOG_EPSILON", "Loss", "LossFunction", "compute_loss", "get"]
