"""Core typing contracts for textmlp."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Sequence, Union

import numpy as np

Array = np.ndarray
Vector = Union[Array, Sequence[float]]

# JSON-compatible snapshot produced by ``NeuralNetwork.get_model``.
Snapshot = Dict[str, Any]


class Sample(NamedTuple):
    """A single labelled feature vector."""

    features: Vector
    target: Vector


class Prediction(NamedTuple):
    """Predicted class index and the probability vector it was taken from."""

    label: int
    probs: Array


@dataclass
class ForwardCache:
    """Intermediate values captured during the most recent forward pass.

    ``z_values`` holds one pre-activation vector per transition and
    ``activations`` one vector per layer, starting with the input itself.
    """

    z_values: List[Array]
    activations: List[Array]


@dataclass(frozen=True)
class Batch:
    """A stacked mini-batch, used by the trainer for bookkeeping."""

    inputs: Array
    targets: Array

    def samples(self) -> List[Sample]:
        return [Sample(x, y) for x, y in zip(self.inputs, self.targets)]

    def __len__(self) -> int:
        return int(self.inputs.shape[0])
