"""Fully-connected feed-forward network engine.

The network is a stack of *transitions*.  Transition ``i`` connects layer
``i`` to layer ``i + 1`` and owns a ``(layer_sizes[i], layer_sizes[i + 1])``
weight matrix, a bias vector and an activation function.  Training uses
per-sample backpropagation with gradients summed over the batch in batch
order, followed by a single averaged gradient-descent update.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from . import activations as act
from . import losses
from .activations import Activation, ActivationName
from .errors import (
    ConfigurationError,
    InputError,
    InvariantViolation,
    LayerIndexError,
    NotInitializedError,
)
from .losses import LossFunction
from .types import Array, ForwardCache, Prediction, Snapshot, Vector

logger = logging.getLogger(__name__)

_SEED_BOUND = 2**31 - 1

SNAPSHOT_KEYS = (
    "seed",
    "layer_neuron_counts",
    "num_layers",
    "weights",
    "biases",
    "activation_functions",
    "loss_function",
    "epoch",
    "learning_rate",
)


def _validate_topology(layer_sizes: Sequence[int]) -> List[int]:
    try:
        sizes = [int(n) for n in layer_sizes]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Layer sizes must be integers, got {layer_sizes!r}") from exc
    if len(sizes) < 2:
        raise ConfigurationError("A network needs at least an input and an output layer")
    if any(n <= 0 for n in sizes):
        raise ConfigurationError(f"Layer sizes must be positive, got {sizes}")
    return sizes


def _as_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be an integer, got {value!r}")
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return int(value)
    raise ConfigurationError(f"{what} must be an integer, got {value!r}")


def _as_float(value: Any, what: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{what} must be a number, got {value!r}") from exc


def _validate_seed(seed: Optional[int]) -> Optional[int]:
    if seed is None:
        return None
    seed = _as_int(seed, "seed")
    # negative seeds mean "draw one", matching older model files
    return seed if seed >= 0 else None


def _as_vector(values: Vector, size: int, what: str) -> Array:
    try:
        arr = np.asarray(values, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as exc:
        raise InputError(f"{what} must be a numeric vector") from exc
    if arr.size != size:
        raise InputError(f"{what} has {arr.size} values, expected {size}")
    return arr


def _as_array(values: Any, shape: Tuple[int, ...], what: str) -> Array:
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{what} is not a numeric array") from exc
    if arr.shape != shape:
        raise ConfigurationError(f"{what} has shape {arr.shape}, expected {shape}")
    return arr


def _unpack(sample: Any) -> Tuple[Vector, Vector]:
    if isinstance(sample, Mapping):
        target = sample["label"] if "label" in sample else sample.get("target")
        if "features" not in sample or target is None:
            raise InputError("Batch entries need 'features' and 'label' keys")
        return sample["features"], target
    try:
        features, target = sample
    except (TypeError, ValueError) as exc:
        raise InputError("Batch entries must be (features, target) pairs") from exc
    return features, target


class NeuralNetwork:
    """Feed-forward classifier with per-transition activations.

    Parameters
    ----------
    layer_sizes:
        Neuron count of every layer, input first and output last.
    loss_function:
        ``"mse"`` or ``"cross_entropy"``.
    seed:
        Seed for :meth:`init_weights`.  ``None`` draws a fresh seed the first
        time weights are initialised and records it in the snapshot.
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        loss_function: Union[str, LossFunction] = LossFunction.MSE,
        seed: Optional[int] = None,
    ) -> None:
        self._layer_sizes = _validate_topology(layer_sizes)
        self._loss = LossFunction.parse(loss_function)
        self._seed = _validate_seed(seed)
        self._activations: List[Activation] = [Activation.SIGMOID] * (len(self._layer_sizes) - 1)
        self._weights: List[Array] = []
        self._biases: List[Array] = []
        self._weight_grads: List[Array] = []
        self._bias_grads: List[Array] = []
        self._cache: Optional[ForwardCache] = None
        self.epoch: Optional[int] = None
        self.learning_rate: Optional[float] = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "NeuralNetwork":
        """Build a network whose topology is taken from ``snapshot``."""

        if not isinstance(snapshot, Mapping) or snapshot.get("layer_neuron_counts") is None:
            raise ConfigurationError("Snapshot does not record layer_neuron_counts")
        network = cls(
            snapshot["layer_neuron_counts"],
            snapshot.get("loss_function") or LossFunction.MSE,
        )
        network.load_model(snapshot)
        return network

    def __repr__(self) -> str:
        names = [a.value for a in self._activations]
        return (
            f"NeuralNetwork(layer_sizes={self._layer_sizes}, activations={names}, "
            f"loss={self._loss.value!r})"
        )

    # ------------------------------------------------------------------
    # Configuration

    @property
    def layer_sizes(self) -> List[int]:
        return list(self._layer_sizes)

    @property
    def num_layers(self) -> int:
        return len(self._layer_sizes)

    @property
    def activation_functions(self) -> List[Activation]:
        return list(self._activations)

    @property
    def loss_function(self) -> LossFunction:
        return self._loss

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    @property
    def weights(self) -> List[Array]:
        return self._weights

    @property
    def biases(self) -> List[Array]:
        return self._biases

    @property
    def is_initialized(self) -> bool:
        return bool(self._weights)

    @property
    def last_forward(self) -> Optional[ForwardCache]:
        """Cache of the latest forward pass; invalid after the next one."""

        return self._cache

    def set_activation_function(self, index: int, name: ActivationName) -> None:
        """Assign the activation of transition ``index`` (0 to ``num_layers - 2``)."""

        if not 0 <= index < len(self._activations):
            raise LayerIndexError(
                f"Transition index {index} out of range [0, {len(self._activations) - 1}]"
            )
        self._activations[index] = Activation.parse(name)

    def set_activation_functions(self, names: Sequence[ActivationName]) -> None:
        if len(names) != len(self._activations):
            raise ConfigurationError(
                f"Expected {len(self._activations)} activation functions, got {len(names)}"
            )
        self._activations = [Activation.parse(name) for name in names]

    def set_seed(self, seed: Optional[int]) -> None:
        self._seed = _validate_seed(seed)

    def set_input_size(self, n: int) -> None:
        self._resize(0, n)

    def set_hidden_size(self, index: int, n: int) -> None:
        if not 0 <= index < self.num_layers - 2:
            raise LayerIndexError(f"Hidden layer index {index} out of range")
        self._resize(index + 1, n)

    def set_output_size(self, n: int) -> None:
        self._resize(self.num_layers - 1, n)

    def _resize(self, layer: int, n: int) -> None:
        sizes = list(self._layer_sizes)
        sizes[layer] = n
        self._layer_sizes = _validate_topology(sizes)
        self._reset_parameters()

    def _reset_parameters(self) -> None:
        self._weights = []
        self._biases = []
        self._weight_grads = []
        self._bias_grads = []
        self._cache = None

    # ------------------------------------------------------------------
    # Parameters

    def init_weights(self) -> None:
        """Draw fresh weights from a seeded uniform(-1, 1) generator and zero the biases."""

        if self._seed is None:
            self._seed = int(np.random.default_rng().integers(0, _SEED_BOUND))
            logger.debug("Drew weight initialisation seed %d", self._seed)
        rng = np.random.default_rng(self._seed)
        weights: List[Array] = []
        biases: List[Array] = []
        for activation, fan_in, fan_out in zip(
            self._activations, self._layer_sizes[:-1], self._layer_sizes[1:]
        ):
            scale = act.init_scale(activation, fan_in)
            weights.append(rng.uniform(-1.0, 1.0, size=(fan_in, fan_out)) * scale)
            biases.append(np.zeros(fan_out, dtype=np.float64))
        self._reset_parameters()
        self._weights = weights
        self._biases = biases

    def _require_initialized(self) -> None:
        if not self._weights:
            raise NotInitializedError("Weights are not initialised; call init_weights or load_model")

    def _zeroed_gradients(self) -> Tuple[List[Array], List[Array]]:
        if len(self._weight_grads) != len(self._weights) or any(
            g.shape != w.shape for g, w in zip(self._weight_grads, self._weights)
        ):
            self._weight_grads = [np.zeros_like(w) for w in self._weights]
            self._bias_grads = [np.zeros_like(b) for b in self._biases]
        else:
            for grad in self._weight_grads:
                grad.fill(0.0)
            for grad in self._bias_grads:
                grad.fill(0.0)
        return self._weight_grads, self._bias_grads

    # ------------------------------------------------------------------
    # Computation

    def forward(self, inputs: Vector) -> List[Array]:
        """Propagate ``inputs`` and return the activation of every layer."""

        self._require_initialized()
        a = _as_vector(inputs, self._layer_sizes[0], "Input")
        z_values: List[Array] = []
        trail: List[Array] = [a]
        for W, b, activation in zip(self._weights, self._biases, self._activations):
            z = b + a @ W
            a = act.apply(activation, z)
            z_values.append(z)
            trail.append(a)
        self._cache = ForwardCache(z_values=z_values, activations=trail)
        return list(trail)

    def _output_delta(self, output: Array, target: Array, z: Array) -> Array:
        last = self._activations[-1]
        if last is Activation.SOFTMAX and self._loss is LossFunction.CROSS_ENTROPY:
            # softmax Jacobian and cross-entropy gradient cancel to output - target
            return output - target
        # descent direction: dL/dz = (output - target) * f', applied as W -= lr * grad
        return (output - target) * act.apply_derivative(last, z, output)

    def train(self, batch: Sequence[Any], learning_rate: float) -> float:
        """Run one gradient-descent step over ``batch`` and return its mean loss.

        ``batch`` holds ``(features, target)`` pairs (or mappings with
        ``features``/``label`` keys).  Weights are only updated once every
        sample has been processed, so a malformed sample leaves the network
        untouched.
        """

        self._require_initialized()
        samples = list(batch)
        if not samples:
            raise InputError("Batch cannot be empty")

        n_out = self._layer_sizes[-1]
        last = len(self._weights) - 1
        weight_grads, bias_grads = self._zeroed_gradients()
        total_loss = 0.0

        for sample in samples:
            features, target = _unpack(sample)
            target_vec = _as_vector(target, n_out, "Target")
            trail = self.forward(features)
            output = trail[-1]
            if output.size == 0:
                raise InvariantViolation("Forward propagation did not produce output")
            z_values = self._cache.z_values

            deltas: List[Array] = [np.empty(0)] * (last + 1)
            delta = self._output_delta(output, target_vec, z_values[-1])
            deltas[last] = delta
            for i in range(last, 0, -1):
                error = self._weights[i] @ delta
                prev = self._activations[i - 1]
                derivative = act.apply_derivative(prev, z_values[i - 1], trail[i])
                delta = error * derivative
                deltas[i - 1] = delta

            for i in range(last + 1):
                weight_grads[i] += np.outer(trail[i], deltas[i])
                bias_grads[i] += deltas[i]

            total_loss += self.compute_loss(target_vec, output)

        batch_size = len(samples)
        for W, b, grad_w, grad_b in zip(self._weights, self._biases, weight_grads, bias_grads):
            W -= learning_rate * (grad_w / batch_size)
            b -= learning_rate * (grad_b / batch_size)

        return total_loss / batch_size

    def train_sample(self, features: Vector, target: Vector, learning_rate: float) -> float:
        return self.train([(features, target)], learning_rate)

    def compute_loss(self, target: Vector, output: Vector) -> float:
        return losses.compute_loss(self._loss, target, output)

    def get_output(self, inputs: Vector) -> Array:
        """Raw activation of the output layer."""

        trail = self.forward(inputs)
        if not trail:
            raise InvariantViolation("Forward propagation did not produce activations")
        return trail[-1].copy()

    def get_probs(self, inputs: Vector) -> Array:
        """Output normalised to a probability vector."""

        output = self.get_output(inputs)
        if self._activations[-1] is Activation.SOFTMAX:
            return output
        return act.softmax(output)

    def predict(self, inputs: Vector) -> Prediction:
        probs = self.get_probs(inputs)
        if probs.size == 0:
            raise InvariantViolation("Prediction did not produce probabilities")
        # argmax returns the first maximum, so ties go to the lowest index
        return Prediction(label=int(np.argmax(probs)), probs=probs)

    # ------------------------------------------------------------------
    # Snapshots

    def get_model(self) -> Snapshot:
        """Return a JSON-compatible copy of the network state."""

        snapshot: Snapshot = {
            "seed": self._seed,
            "layer_neuron_counts": list(self._layer_sizes),
            "num_layers": self.num_layers,
            "weights": [W.tolist() for W in self._weights],
            "biases": [b.tolist() for b in self._biases],
            "activation_functions": [a.value for a in self._activations],
            "loss_function": self._loss.value,
        }
        if self.epoch is not None:
            snapshot["epoch"] = int(self.epoch)
        if self.learning_rate is not None:
            snapshot["learning_rate"] = float(self.learning_rate)
        return snapshot

    def load_model(self, snapshot: Snapshot) -> None:
        """Merge ``snapshot`` into this network.

        ``weights`` and ``biases`` are mandatory and always replaced.  Every
        other key is optional; a missing key keeps the current value.  The
        merged state is validated before anything is changed.
        """

        if not isinstance(snapshot, Mapping):
            raise ConfigurationError("Model data must be a mapping")
        if snapshot.get("weights") is None or snapshot.get("biases") is None:
            raise ConfigurationError("Invalid model data: weights or biases are missing")

        seed = self._seed
        if snapshot.get("seed") is not None:
            seed = _validate_seed(snapshot["seed"])

        sizes = self._layer_sizes
        if snapshot.get("layer_neuron_counts") is not None:
            sizes = _validate_topology(snapshot["layer_neuron_counts"])
        num_layers = snapshot.get("num_layers")
        if num_layers is not None and _as_int(num_layers, "num_layers") != len(sizes):
            raise ConfigurationError(
                f"num_layers={snapshot['num_layers']} does not match {len(sizes)} layer sizes"
            )

        activations = self._activations
        if snapshot.get("activation_functions") is not None:
            activations = [Activation.parse(name) for name in snapshot["activation_functions"]]
        if len(activations) != len(sizes) - 1:
            raise ConfigurationError(
                f"Expected {len(sizes) - 1} activation functions, got {len(activations)}"
            )

        loss = self._loss
        if snapshot.get("loss_function") is not None:
            loss = LossFunction.parse(snapshot["loss_function"])

        raw_weights = list(snapshot["weights"])
        raw_biases = list(snapshot["biases"])
        if len(raw_weights) != len(sizes) - 1 or len(raw_biases) != len(sizes) - 1:
            raise ConfigurationError(
                f"Expected {len(sizes) - 1} weight matrices and bias vectors, "
                f"got {len(raw_weights)} and {len(raw_biases)}"
            )
        weights = [
            _as_array(w, (sizes[i], sizes[i + 1]), f"weights[{i}]") for i, w in enumerate(raw_weights)
        ]
        biases = [_as_array(b, (sizes[i + 1],), f"biases[{i}]") for i, b in enumerate(raw_biases)]

        epoch = self.epoch
        if snapshot.get("epoch") is not None:
            epoch = _as_int(snapshot["epoch"], "epoch")
        learning_rate = self.learning_rate
        if snapshot.get("learning_rate") is not None:
            learning_rate = _as_float(snapshot["learning_rate"], "learning_rate")

        self._seed = seed
        self._layer_sizes = list(sizes)
        self._activations = list(activations)
        self._loss = loss
        self._reset_parameters()
        self._weights = weights
        self._biases = biases
        self.epoch = epoch
        self.learning_rate = learning_rate
        logger.debug("Loaded model with layer sizes %s", self._layer_sizes)


__all__ = ["NeuralNetwork", "SNAPSHOT_KEYS"]
