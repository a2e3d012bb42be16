"""Epoch-level training driver for :class:`~textmlp.core.network.NeuralNetwork`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np

from ..core.errors import InputError
from ..core.network import NeuralNetwork
from ..core.types import Batch
from ..data.corpus import shuffled_batches
from .checkpoints import checkpoint_path, save_snapshot
from .config import TrainConfig

logger = logging.getLogger(__name__)


def decayed_learning_rate(initial_rate: float, decay_rate: float, epoch: int) -> float:
    """``initial_rate / (1 + decay_rate * epoch)``; constant when ``decay_rate`` is 0."""

    if decay_rate <= 0:
        return float(initial_rate)
    return float(initial_rate) / (1.0 + decay_rate * epoch)


def accuracy(network: NeuralNetwork, data: Batch) -> float:
    """Fraction of rows whose predicted label matches the one-hot target."""

    if len(data) == 0:
        return 0.0
    hits = [
        network.predict(features).label == int(np.argmax(target))
        for features, target in zip(data.inputs, data.targets)
    ]
    return float(np.mean(hits))


@dataclass(frozen=True)
class TrainResult:
    epochs_run: int
    final_epoch: int
    final_loss: float
    final_accuracy: float
    learning_rate: float
    model_path: str


class ProgressPrinter:
    """Print one progress line per reported epoch."""

    def __init__(self, total_epochs: int) -> None:
        self.total_epochs = total_epochs

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        print(
            f"Epoch: {epoch}/{self.total_epochs}, "
            f"Loss: {metrics.get('loss', float('nan')):.6f}, "
            f"Accuracy: {metrics.get('accuracy', float('nan')):.3f}, "
            f"Learning Rate: {metrics.get('learning_rate', float('nan')):.6f}"
        )


class Trainer:
    """Run shuffled epochs over a fixed dataset with periodic checkpoints.

    Epoch ``e`` (0-based, absolute across resumes) trains every sample once.
    After it, the learning rate becomes ``decayed_learning_rate(initial, decay,
    e)``.  Checkpoints record the number of completed epochs so a resumed run
    continues with the next one.
    """

    def __init__(
        self,
        network: NeuralNetwork,
        config: TrainConfig,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.network = network
        self.config = config
        self.callbacks = list(callbacks or [])

    def run(
        self,
        data: Batch,
        *,
        start_epoch: int = 0,
        learning_rate: float | None = None,
        model_path: str | Path | None = None,
    ) -> TrainResult:
        if len(data) == 0:
            raise InputError("Training data is empty")
        config = self.config
        model_path = Path(model_path or config.model_path)
        rate = float(learning_rate if learning_rate is not None else config.learning_rate)
        rng = np.random.default_rng((config.shuffle_seed, start_epoch))

        done = start_epoch
        loss = float("nan")
        acc = float("nan")
        try:
            for epoch in range(start_epoch, config.epochs):
                loss = self._run_epoch(data, rate, rng)
                completed = done = epoch + 1
                is_last = completed == config.epochs
                if epoch % config.log_every == 0 or is_last:
                    acc = accuracy(self.network, data)
                    self._emit(completed, {"loss": loss, "accuracy": acc, "learning_rate": rate})

                rate = decayed_learning_rate(config.learning_rate, config.decay_rate, epoch)

                periodic = config.save_every and epoch % config.save_every == 0
                if periodic and epoch > 0 and not is_last:
                    path = checkpoint_path(
                        model_path, completed, epoch_suffix=config.checkpoint_epoch_suffix
                    )
                    self._save(path, completed, rate)
                    print(f'Model has been saved to "{path}" at epoch {completed}')
        except KeyboardInterrupt:
            if config.save_on_interrupt:
                self._save(model_path, done, rate)
                print(f'\nInterrupted; model saved to "{model_path}" at epoch {done}')
            raise

        epochs_run = max(0, config.epochs - start_epoch)
        if epochs_run:
            self._save(model_path, config.epochs, rate)
        else:
            acc = accuracy(self.network, data)
        return TrainResult(
            epochs_run=epochs_run,
            final_epoch=max(config.epochs, start_epoch),
            final_loss=loss,
            final_accuracy=acc,
            learning_rate=rate,
            model_path=str(model_path),
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _run_epoch(self, data: Batch, rate: float, rng: np.random.Generator) -> float:
        total = 0.0
        for batch in shuffled_batches(data, self.config.batch_size, rng):
            total += self.network.train(batch.samples(), rate) * len(batch)
        return total / len(data)

    def _save(self, path: Path, epoch: int, rate: float) -> None:
        self.network.epoch = epoch
        self.network.learning_rate = rate
        save_snapshot(path, self.network.get_model())
        logger.debug("Checkpoint at epoch %d written to %s", epoch, path)

    def _emit(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["ProgressPrinter", "TrainResult", "Trainer", "accuracy", "decayed_learning_rate"]
