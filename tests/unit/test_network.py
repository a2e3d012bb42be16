import json

import numpy as np
import pytest

from textmlp.core.activations import Activation
from textmlp.core.errors import (
    ConfigurationError,
    InputError,
    LayerIndexError,
    NotInitializedError,
    UnsupportedOperation,
)
from textmlp.core.network import NeuralNetwork
from textmlp.core.types import Sample


def _network(sizes=(3, 4, 2), activations=("sigmoid", "sigmoid"), loss="mse", seed=0):
    net = NeuralNetwork(list(sizes), loss, seed=seed)
    net.set_activation_functions(list(activations))
    net.init_weights()
    return net


def _numeric_gradient(net, layer, features, target, eps=1e-6):
    W = net.weights[layer]
    grad = np.zeros_like(W)
    for idx in np.ndindex(W.shape):
        original = W[idx]
        W[idx] = original + eps
        plus = net.compute_loss(target, net.get_output(features))
        W[idx] = original - eps
        minus = net.compute_loss(target, net.get_output(features))
        W[idx] = original
        grad[idx] = (plus - minus) / (2 * eps)
    return grad


def test_init_weights_shapes_and_zero_biases():
    net = _network(sizes=(5, 3, 2))
    assert [W.shape for W in net.weights] == [(5, 3), (3, 2)]
    assert all(np.all(b == 0.0) for b in net.biases)
    assert net.is_initialized


def test_init_weights_is_deterministic_for_a_seed():
    a = _network(seed=42)
    b = _network(seed=42)
    c = _network(seed=43)
    assert all(np.array_equal(x, y) for x, y in zip(a.weights, b.weights))
    assert not np.array_equal(a.weights[0], c.weights[0])


def test_weights_are_scaled_by_fan_in():
    net = _network(sizes=(8, 4, 2), activations=("relu", "softmax"), loss="cross_entropy")
    assert np.max(np.abs(net.weights[0])) <= 0.5
    assert np.max(np.abs(net.weights[1])) <= np.sqrt(1.0 / 4)


def test_drawn_seed_is_recorded():
    net = NeuralNetwork([2, 2])
    assert net.seed is None
    net.init_weights()
    assert isinstance(net.seed, int)
    assert net.get_model()["seed"] == net.seed


def test_negative_seed_means_unseeded():
    assert NeuralNetwork([2, 2], seed=-1).seed is None


@pytest.mark.parametrize("sizes", [[3], [], [2, 0, 1], [2, -1]])
def test_invalid_topologies_are_rejected(sizes):
    with pytest.raises(ConfigurationError):
        NeuralNetwork(sizes)


def test_unknown_names_are_rejected():
    with pytest.raises(UnsupportedOperation):
        NeuralNetwork([2, 2], "hinge")
    net = NeuralNetwork([2, 2])
    with pytest.raises(ConfigurationError):
        net.set_activation_function(0, "bogus")


def test_set_activation_function_index_range():
    net = NeuralNetwork([3, 4, 2])
    net.set_activation_function(1, "softmax")
    assert net.activation_functions == [Activation.SIGMOID, Activation.SOFTMAX]
    with pytest.raises(LayerIndexError):
        net.set_activation_function(2, "relu")
    with pytest.raises(IndexError):
        net.set_activation_function(-1, "relu")


def test_resizing_resets_parameters():
    net = _network(sizes=(3, 4, 2))
    net.set_hidden_size(0, 6)
    assert net.layer_sizes == [3, 6, 2]
    assert not net.is_initialized
    with pytest.raises(LayerIndexError):
        net.set_hidden_size(1, 2)
    net.set_input_size(5)
    net.set_output_size(3)
    assert net.layer_sizes == [5, 6, 3]


def test_forward_requires_initialised_weights_and_matching_input():
    net = NeuralNetwork([3, 2])
    with pytest.raises(NotInitializedError):
        net.forward([0.0, 0.0, 0.0])
    net.init_weights()
    with pytest.raises(InputError):
        net.forward([1.0, 2.0])


def test_forward_returns_one_activation_per_layer():
    net = _network(sizes=(3, 4, 2))
    trail = net.forward([1.0, 0.0, 1.0])
    assert [a.shape for a in trail] == [(3,), (4,), (2,)]
    cache = net.last_forward
    assert len(cache.z_values) == 2
    assert np.allclose(cache.z_values[0], net.biases[0] + trail[0] @ net.weights[0])


def test_softmax_output_probabilities_sum_to_one():
    net = _network(sizes=(3, 5, 3), activations=("relu", "softmax"), loss="cross_entropy")
    probs = net.get_probs([1.0, 0.5, -0.5])
    assert probs.shape == (3,)
    assert np.isclose(probs.sum(), 1.0)


def test_predict_ties_go_to_lowest_index():
    net = NeuralNetwork([2, 3])
    net.load_model({"weights": [np.zeros((2, 3)).tolist()], "biases": [[0.0, 0.0, 0.0]]})
    prediction = net.predict([1.0, 1.0])
    assert prediction.label == 0
    assert np.allclose(prediction.probs, 1.0 / 3)


def test_train_matches_mse_gradient():
    net = _network(sizes=(3, 4, 2), activations=("tanh", "sigmoid"), loss="mse", seed=5)
    features = np.array([0.5, -1.0, 2.0])
    target = np.array([1.0, 0.0])
    expected = [_numeric_gradient(net, layer, features, target) for layer in range(2)]
    before = [W.copy() for W in net.weights]
    lr = 1e-3
    net.train_sample(features, target, lr)
    for layer in range(2):
        step = net.weights[layer] - before[layer]
        # two outputs: d/do mean((t - o)^2) == (o - t)
        assert np.allclose(step, -lr * expected[layer], rtol=1e-4, atol=1e-10)


def test_train_softmax_cross_entropy_shortcut():
    net = _network(sizes=(2, 3, 3), activations=("relu", "softmax"), loss="cross_entropy", seed=1)
    features = np.array([1.0, -0.5])
    target = np.array([0.0, 0.0, 1.0])
    expected = _numeric_gradient(net, 1, features, target)
    before = net.weights[1].copy()
    lr = 1e-3
    net.train_sample(features, target, lr)
    # the per-sample loss averages over the three outputs
    assert np.allclose(net.weights[1] - before, -lr * 3 * expected, rtol=1e-4, atol=1e-10)


def test_train_accepts_samples_and_mappings():
    net = _network(sizes=(2, 2), activations=("sigmoid",))
    loss = net.train(
        [Sample([1.0, 0.0], [1.0, 0.0]), {"features": [0.0, 1.0], "label": [0.0, 1.0]}],
        0.1,
    )
    assert np.isfinite(loss)


def test_malformed_batch_leaves_weights_untouched():
    net = _network(sizes=(2, 2), activations=("sigmoid",))
    before = [W.copy() for W in net.weights]
    with pytest.raises(InputError):
        net.train([([1.0, 0.0], [1.0, 0.0]), ([1.0, 0.0, 0.0], [0.0, 1.0])], 0.5)
    with pytest.raises(InputError):
        net.train([], 0.5)
    assert all(np.array_equal(a, b) for a, b in zip(before, net.weights))


def test_train_before_init_fails():
    with pytest.raises(NotInitializedError):
        NeuralNetwork([2, 2]).train([([0.0, 1.0], [1.0, 0.0])], 0.1)


def test_get_model_is_json_compatible():
    net = _network(sizes=(3, 4, 2), activations=("relu", "softmax"), loss="cross_entropy")
    snapshot = net.get_model()
    restored = NeuralNetwork.from_snapshot(json.loads(json.dumps(snapshot)))
    x = [1.0, 0.0, 1.0]
    assert np.allclose(restored.get_output(x), net.get_output(x))
    assert restored.activation_functions == net.activation_functions
    assert restored.loss_function is net.loss_function


def test_load_model_requires_weights_and_biases():
    net = NeuralNetwork([2, 2])
    with pytest.raises(ConfigurationError):
        net.load_model({"weights": [[[0.0, 0.0], [0.0, 0.0]]]})


def test_failed_load_changes_nothing():
    net = _network(sizes=(2, 3, 2))
    before = net.get_model()
    bad = dict(before)
    bad["weights"] = [np.zeros((2, 3)).tolist(), np.zeros((3, 5)).tolist()]
    with pytest.raises(ConfigurationError):
        net.load_model(bad)
    mismatched = dict(before, num_layers=4)
    with pytest.raises(ConfigurationError):
        net.load_model(mismatched)
    assert net.get_model() == before


def test_bad_epoch_or_learning_rate_does_not_half_load():
    net = _network(sizes=(2, 3, 2))
    before = net.get_model()
    changed = dict(
        before,
        weights=[np.ones((2, 3)).tolist(), np.ones((3, 2)).tolist()],
        activation_functions=["relu", "softmax"],
    )
    with pytest.raises(ConfigurationError):
        net.load_model(dict(changed, epoch="ten"))
    with pytest.raises(ConfigurationError):
        net.load_model(dict(changed, learning_rate="fast"))
    assert net.get_model() == before
    assert net.activation_functions == [Activation.SIGMOID, Activation.SIGMOID]


@pytest.mark.parametrize(
    "field, value", [("seed", "abc"), ("seed", 1.7), ("num_layers", "three"), ("epoch", 2.5)]
)
def test_malformed_integer_fields_are_configuration_errors(field, value):
    net = _network(sizes=(2, 3, 2))
    before = net.get_model()
    with pytest.raises(ConfigurationError):
        net.load_model(dict(before, **{field: value}))
    assert net.get_model() == before


def test_integral_float_fields_are_accepted():
    net = _network(sizes=(2, 3, 2))
    net.load_model(dict(net.get_model(), seed=4.0, num_layers=3.0, epoch=12.0))
    assert net.seed == 4
    assert net.epoch == 12


def test_set_seed_controls_the_next_initialisation():
    reference = _network(sizes=(3, 4, 2), seed=21)
    net = NeuralNetwork([3, 4, 2], "mse")
    net.set_seed(21)
    net.init_weights()
    assert all(np.array_equal(a, b) for a, b in zip(net.weights, reference.weights))

    net.set_seed(None)
    assert net.seed is None
    net.init_weights()
    assert isinstance(net.seed, int)
    assert net.get_model()["seed"] == net.seed
    with pytest.raises(ConfigurationError):
        net.set_seed("seven")


def test_partial_snapshot_keeps_current_settings():
    net = NeuralNetwork([2, 2], "cross_entropy")
    net.set_activation_function(0, "softmax")
    net.load_model({"weights": [[[1.0, 0.0], [0.0, 1.0]]], "biases": [[0.0, 0.0]]})
    assert net.activation_functions == [Activation.SOFTMAX]
    assert net.layer_sizes == [2, 2]
    assert net.epoch is None
    assert "epoch" not in net.get_model()
