"""Pipeline assembly: corpus → vocabulary → network → trainer, and prediction."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from ..core.errors import ConfigurationError
from ..core.network import NeuralNetwork
from ..data.vocabulary import Vocabulary
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .checkpoints import load_snapshot
from .config import PipelineConfig
from .trainer import ProgressPrinter, Trainer, TrainResult


@dataclass(frozen=True)
class RunResult:
    train: TrainResult
    run_dir: str
    metrics_path: str
    vocabulary_path: str
    plot_path: str = ""


@dataclass(frozen=True)
class PredictionRecord:
    text: str
    label: str
    probs: Dict[str, float]


def run_training(
    config: PipelineConfig,
    *,
    resume: bool = True,
    callbacks: Sequence[object] = (),
) -> RunResult:
    """Train a classifier as described by ``config``.

    When ``resume`` is set and the configured model file exists, training
    continues from the epoch and learning rate recorded in it.
    """

    train_cfg = config.train
    run_dir = Path(train_cfg.run_dir)
    run_dir.mkdir(parents=True, exist_ok=True)

    corpus = config.data.load_corpus()
    vocabulary = corpus.build_vocabulary()
    vocabulary.save(train_cfg.vocabulary_path)
    print(f"Vocabulary size: {vocabulary.size}")
    print(f"Vocabulary has been saved to {train_cfg.vocabulary_path}")
    data = corpus.encode(vocabulary)

    sizes = config.model.layer_sizes(vocabulary.size, len(vocabulary.labels))
    network = NeuralNetwork(sizes, config.model.loss, seed=config.model.seed)
    network.set_activation_functions(config.model.activation_names())

    start_epoch = 0
    learning_rate = None
    resumed = resume and train_cfg.model_path.exists()
    if resumed:
        snapshot = load_snapshot(train_cfg.model_path)
        network.load_model(snapshot)
        start_epoch = int(snapshot.get("epoch") or 0)
        learning_rate = snapshot.get("learning_rate")
        print(f"Model loaded from {train_cfg.model_path} (epoch {start_epoch})")
    else:
        network.init_weights()

    _print_startup_summary(
        documents=len(corpus),
        layer_sizes=network.layer_sizes,
        activations=[a.value for a in network.activation_functions],
        loss=network.loss_function.value,
        seed=network.seed,
        epochs=train_cfg.epochs,
        batch_size=train_cfg.batch_size,
    )

    metrics_path = run_dir / "metrics_train.jsonl"
    jsonl = JsonlSink(metrics_path, split="train", seed=network.seed, append=resumed)
    csv_sink = CsvSink(run_dir / "metrics_train.csv", split="train", append=resumed)
    plots = PlotAdapter(run_dir, enable_plots=train_cfg.enable_plots)
    trainer = Trainer(
        network,
        train_cfg,
        callbacks=[ProgressPrinter(train_cfg.epochs), jsonl, csv_sink, plots, *callbacks],
    )

    print(f"Training for {train_cfg.epochs} epochs...")
    result = trainer.run(data, start_epoch=start_epoch, learning_rate=learning_rate)
    plot_path = plots.close()
    print("\nTraining finished")
    print(f"Model has been saved to {result.model_path}")

    (run_dir / "config.json").write_text(json.dumps(config.to_dict(), indent=2))

    return RunResult(
        train=result,
        run_dir=str(run_dir),
        metrics_path=str(metrics_path),
        vocabulary_path=str(train_cfg.vocabulary_path),
        plot_path=str(plot_path or ""),
    )


def load_classifier(config: PipelineConfig) -> tuple[NeuralNetwork, Vocabulary]:
    model_path = config.train.model_path
    vocab_path = config.train.vocabulary_path
    for path in (model_path, vocab_path):
        if not path.exists():
            raise FileNotFoundError(f"{path} not found. Please run training first.")
    network = NeuralNetwork.from_snapshot(load_snapshot(model_path))
    vocabulary = Vocabulary.load(vocab_path)
    if network.layer_sizes[0] != vocabulary.size:
        raise ConfigurationError(
            f"Model expects {network.layer_sizes[0]} features but the vocabulary has "
            f"{vocabulary.size} words"
        )
    return network, vocabulary


def run_prediction(
    config: PipelineConfig, sentences: Iterable[str] | None = None
) -> List[PredictionRecord]:
    """Classify ``sentences`` (default: the configured test sentences)."""

    network, vocabulary = load_classifier(config)
    texts = list(sentences) if sentences else list(config.data.test_sentences)
    names = list(vocabulary.labels)
    records: List[PredictionRecord] = []
    for text in texts:
        prediction = network.predict(vocabulary.vectorize_one(text))
        labels = names if len(names) == prediction.probs.size else [
            str(idx) for idx in range(prediction.probs.size)
        ]
        records.append(
            PredictionRecord(
                text=text,
                label=labels[prediction.label],
                probs={label: float(p) for label, p in zip(labels, prediction.probs)},
            )
        )
    return records


def format_prediction(record: PredictionRecord) -> str:
    lines = [f'Input: "{record.text}"', f" -> Label: {record.label}", "    Probabilities:"]
    for label, prob in record.probs.items():
        lines.append(f"      - {label}: {prob * 100:.2f}%")
    return "\n".join(lines)


def _print_startup_summary(
    *,
    documents: int,
    layer_sizes: Sequence[int],
    activations: Sequence[str],
    loss: str,
    seed: int | None,
    epochs: int,
    batch_size: int | None,
) -> None:
    print("=== textmlp run ===")
    print(f"Documents     : {documents}")
    print(f"Layer sizes   : {list(layer_sizes)}")
    print(f"Activations   : {list(activations)}")
    print(f"Loss          : {loss}")
    print(f"Seed          : {seed}")
    print(f"Epochs        : {epochs}")
    print(f"Batch size    : {batch_size or 'full'}")
    print(f"Parameters    : {sum(a * b + b for a, b in zip(layer_sizes[:-1], layer_sizes[1:]))}")
    print("===================")


__all__ = [
    "PredictionRecord",
    "RunResult",
    "format_prediction",
    "load_classifier",
    "run_prediction",
    "run_training",
]
