from __future__ import annotations

import numpy as np

from textmlp.core.network import NeuralNetwork
from textmlp.core.types import Batch
from textmlp.training.trainer import accuracy


def _network(sizes, activations, loss, seed):
    net = NeuralNetwork(sizes, loss, seed=seed)
    net.set_activation_functions(activations)
    net.init_weights()
    return net


def test_repeated_steps_reduce_loss_on_a_fixed_pair() -> None:
    net = _network([3, 4, 2], ["sigmoid", "sigmoid"], "mse", seed=0)
    sample = ([1.0, 0.0, 1.0], [1.0, 0.0])
    losses = [net.train([sample], 0.1) for _ in range(50)]
    assert losses[-1] < losses[0]
    assert all(later <= earlier + 1e-12 for earlier, later in zip(losses, losses[1:]))


def test_separable_points_are_learned() -> None:
    inputs = np.array([[1.0, 1.0], [1.0, 0.8], [-1.0, -1.0], [-0.8, -1.0]])
    targets = np.array([[1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
    data = Batch(inputs=inputs, targets=targets)
    net = _network([2, 4, 2], ["relu", "softmax"], "cross_entropy", seed=0)
    for _ in range(2000):
        net.train(data.samples(), 0.1)
    assert accuracy(net, data) >= 0.9


def test_multiclass_bag_of_words() -> None:
    rng = np.random.default_rng(1)
    words_per_class = 4
    inputs = []
    labels = []
    for label in range(3):
        for _ in range(10):
            row = np.zeros(12)
            row[label * words_per_class + rng.choice(words_per_class, size=2, replace=False)] = 1.0
            inputs.append(row)
            labels.append(label)
    data = Batch(inputs=np.array(inputs), targets=np.eye(3)[labels])
    net = _network([12, 8, 3], ["tanh", "softmax"], "cross_entropy", seed=2)
    losses = [net.train(data.samples(), 0.5) for _ in range(600)]
    assert losses[-1] < losses[0]
    assert accuracy(net, data) >= 0.9
