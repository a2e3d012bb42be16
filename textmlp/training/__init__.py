"""Training driver, configuration and pipelines."""

from .config import PipelineConfig, TrainConfig, load_preset, presets, resolve_config
from .pipelines import run_prediction, run_training
from .trainer import Trainer, TrainResult

__all__ = [
    "PipelineConfig",
    "TrainConfig",
    "Trainer",
    "TrainResult",
    "load_preset",
    "presets",
    "resolve_config",
    "run_prediction",
    "run_training",
]
