"""Command line entry point for textmlp training and prediction."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from textmlp.core import activations
from textmlp.training import config as train_config
from textmlp.training import pipelines


def _format_result(result: pipelines.RunResult) -> str:
    payload = {
        "epochs_run": result.train.epochs_run,
        "final_epoch": result.train.final_epoch,
        "loss": result.train.final_loss,
        "accuracy": result.train.final_accuracy,
        "model": result.train.model_path,
        "vocabulary": result.vocabulary_path,
        "metrics": result.metrics_path,
    }
    if result.plot_path:
        payload["plot"] = result.plot_path
    return json.dumps(payload, sort_keys=True)


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--preset",
        choices=sorted(train_config.presets().keys()),
        default="sentiment-demo",
        help="Preset configuration to use",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--run-dir", help="Directory holding the model and vocabulary files")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "WARNING"),
        help="Logging level for library diagnostics",
    )
    sub = parser.add_subparsers(dest="command")

    train = sub.add_parser("train", help="Train a classifier on the configured corpus")
    _add_config_args(train)
    train.add_argument("--epochs", type=int, help="Override the number of epochs")
    train.add_argument("--learning-rate", type=float, help="Override the initial learning rate")
    train.add_argument("--batch-size", type=int, help="Mini-batch size (default: full corpus)")
    train.add_argument("--seed", type=int, help="Weight initialisation seed")
    train.add_argument("--corpus", help="CSV/JSON/YAML corpus file replacing the inline corpus")
    train.add_argument(
        "--fresh", action="store_true", help="Ignore an existing model file and start over"
    )
    train.add_argument(
        "--save-on-interrupt",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Save the model when training is interrupted with Ctrl+C",
    )
    train.add_argument("--enable-plots", action="store_true", help="Write loss.png")
    train.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )

    predict = sub.add_parser("predict", help="Classify sentences with a trained model")
    _add_config_args(predict)
    predict.add_argument("sentences", nargs="*", help="Sentences (default: preset test sentences)")
    predict.add_argument("--json", action="store_true", help="Print JSON records instead of text")

    softmax = sub.add_parser("softmax", help="Print the softmax of the given numbers")
    softmax.add_argument("values", nargs="+", type=float)

    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> list[dict]:
    train: dict = {}
    model: dict = {}
    data: dict = {}
    if getattr(args, "run_dir", None):
        train["run_dir"] = args.run_dir
    if getattr(args, "epochs", None) is not None:
        train["epochs"] = int(args.epochs)
    if getattr(args, "learning_rate", None) is not None:
        train["learning_rate"] = float(args.learning_rate)
    if getattr(args, "batch_size", None) is not None:
        train["batch_size"] = int(args.batch_size)
    if getattr(args, "save_on_interrupt", None) is not None:
        train["save_on_interrupt"] = bool(args.save_on_interrupt)
    if getattr(args, "enable_plots", False):
        train["enable_plots"] = True
    if getattr(args, "seed", None) is not None:
        model["seed"] = int(args.seed)
    if getattr(args, "corpus", None):
        data["corpus_path"] = args.corpus
    return [{"data": data, "model": model, "train": train}]


def _softmax_report(values: list[float]) -> str:
    outputs = activations.softmax(values)
    inputs = ", ".join(f"{v:.1f}" for v in values)
    probs = ", ".join(f"{p:.6f}" for p in outputs)
    terms = " + ".join(f"{p:.6f}" for p in outputs)
    return f"softmax({inputs}) = [{probs}]\n{terms} = {float(outputs.sum()):.1f}"


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.list_presets:
        for name in sorted(train_config.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.command is None:
        raise SystemExit("A command is required: train, predict or softmax")

    if args.command == "softmax":
        print(_softmax_report(list(args.values)))
        return

    config = train_config.resolve_config(args.preset, args.config, overrides=_overrides(args))

    if args.command == "train":
        if args.dump_config:
            args.dump_config.parent.mkdir(parents=True, exist_ok=True)
            args.dump_config.write_text(json.dumps(config.to_dict(), indent=2))
        try:
            result = pipelines.run_training(config, resume=not args.fresh)
        except KeyboardInterrupt:
            raise SystemExit(130) from None
        print(_format_result(result))
        return

    try:
        records = pipelines.run_prediction(config, args.sentences)
    except FileNotFoundError as exc:
        raise SystemExit(f"Error: {exc}") from None
    for record in records:
        if args.json:
            print(json.dumps({"text": record.text, "label": record.label, "probs": record.probs}))
        else:
            print()
            print(pipelines.format_prediction(record))


if __name__ == "__main__":
    main()
