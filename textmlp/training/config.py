"""Configuration value objects, presets and override files."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from ..core.activations import Activation
from ..core.errors import ConfigurationError
from ..core.losses import LossFunction
from ..data.corpus import Corpus, load_corpus

_SENTIMENT_CORPUS: List[Dict[str, str]] = [
    {"text": "i love this amazing place", "label": "positive"},
    {"text": "this is great and wonderful", "label": "positive"},
    {"text": "excellent work good job", "label": "positive"},
    {"text": "i hate this awful place", "label": "negative"},
    {"text": "this is bad and terrible", "label": "negative"},
    {"text": "poor work bad job", "label": "negative"},
    {"text": "this is a place", "label": "neutral"},
    {"text": "the work is done", "label": "neutral"},
    {"text": "i see the job", "label": "neutral"},
]

_SENTIMENT_TESTS: List[str] = [
    "this is a good place",
    "i hate bad work",
    "this job is done",
    "amazing wonderful great",
]

_PRESETS: Dict[str, Mapping[str, object]] = {
    "sentiment-demo": {
        "data": {
            "labels": ["positive", "negative", "neutral"],
            "corpus": _SENTIMENT_CORPUS,
            "test_sentences": _SENTIMENT_TESTS,
        },
        "model": {
            "hidden": [12, 8],
            "hidden_activations": ["relu", "relu"],
            "output_activation": "softmax",
            "loss": "cross_entropy",
        },
        "train": {
            "epochs": 10000,
            "learning_rate": 0.1,
            "decay_rate": 0.001,
            "save_every": 5000,
            "log_every": 200,
            "run_dir": "runs/sentiment-demo",
        },
    },
    "sentiment-quick": {
        "data": {
            "labels": ["positive", "negative", "neutral"],
            "corpus": _SENTIMENT_CORPUS,
            "test_sentences": _SENTIMENT_TESTS,
        },
        "model": {
            "hidden": [8],
            "hidden_activations": ["relu"],
            "output_activation": "softmax",
            "loss": "cross_entropy",
            "seed": 7,
        },
        "train": {
            "epochs": 300,
            "learning_rate": 0.1,
            "decay_rate": 0.0,
            "save_every": 100,
            "log_every": 50,
            "run_dir": "runs/sentiment-quick",
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None
_REQUIRED_SECTIONS = {"data", "model", "train"}


@dataclass(frozen=True)
class DataConfig:
    """Where the labelled corpus comes from and which labels it uses."""

    labels: Tuple[str, ...] = ()
    corpus: Tuple[Mapping[str, str], ...] = ()
    corpus_path: Optional[str] = None
    test_sentences: Tuple[str, ...] = ()

    def load_corpus(self) -> Corpus:
        labels = list(self.labels) or None
        if self.corpus_path:
            return load_corpus(self.corpus_path, labels=labels)
        return Corpus.from_records(self.corpus, labels=labels)


@dataclass(frozen=True)
class ModelConfig:
    hidden: Tuple[int, ...] = (12, 8)
    hidden_activations: Optional[Tuple[str, ...]] = None
    output_activation: str = "softmax"
    loss: str = "cross_entropy"
    seed: Optional[int] = None

    def activation_names(self) -> List[str]:
        """One activation per transition; hidden layers default to relu."""

        hidden = list(self.hidden_activations or [Activation.RELU.value] * len(self.hidden))
        if len(hidden) != len(self.hidden):
            raise ConfigurationError(
                f"{len(self.hidden)} hidden layers but {len(hidden)} hidden activations"
            )
        return hidden + [self.output_activation]

    def layer_sizes(self, d_in: int, d_out: int) -> List[int]:
        return [int(d_in), *(int(h) for h in self.hidden), int(d_out)]


@dataclass(frozen=True)
class TrainConfig:
    epochs: int = 10000
    learning_rate: float = 0.1
    decay_rate: float = 0.001
    batch_size: Optional[int] = None
    shuffle_seed: int = 0
    save_every: int = 5000
    checkpoint_epoch_suffix: bool = False
    save_on_interrupt: bool = False
    log_every: int = 200
    run_dir: str = "runs/default"
    model_file: str = "model.json"
    vocabulary_file: str = "vocabulary.json"
    enable_plots: bool = False

    def __post_init__(self) -> None:
        if self.epochs < 0:
            raise ConfigurationError("epochs must be >= 0")
        if self.learning_rate <= 0:
            raise ConfigurationError("learning_rate must be > 0")
        if self.decay_rate < 0:
            raise ConfigurationError("decay_rate must be >= 0")
        if self.batch_size is not None and self.batch_size <= 0:
            raise ConfigurationError("batch_size must be positive or null")
        if self.save_every < 0 or self.log_every <= 0:
            raise ConfigurationError("save_every must be >= 0 and log_every > 0")

    @property
    def model_path(self) -> Path:
        return Path(self.run_dir) / self.model_file

    @property
    def vocabulary_path(self) -> Path:
        return Path(self.run_dir) / self.vocabulary_file


@dataclass(frozen=True)
class PipelineConfig:
    data: DataConfig = field(default_factory=DataConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    train: TrainConfig = field(default_factory=TrainConfig)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "PipelineConfig":
        missing = _REQUIRED_SECTIONS - set(config)
        if missing:
            raise ConfigurationError(
                f"Config is missing required sections: {', '.join(sorted(missing))}"
            )
        data_cfg = dict(config["data"] or {})
        model_cfg = dict(config["model"] or {})
        train_cfg = dict(config["train"] or {})

        for key in ("labels", "test_sentences"):
            if key in data_cfg:
                data_cfg[key] = tuple(str(v) for v in data_cfg[key] or ())
        if "corpus" in data_cfg:
            data_cfg["corpus"] = tuple(dict(doc) for doc in data_cfg["corpus"] or ())
        if "hidden" in model_cfg:
            model_cfg["hidden"] = tuple(int(h) for h in model_cfg["hidden"] or ())
        if model_cfg.get("hidden_activations") is not None:
            model_cfg["hidden_activations"] = tuple(str(a) for a in model_cfg["hidden_activations"])

        resolved = cls(
            data=_build(DataConfig, "data", data_cfg),
            model=_build(ModelConfig, "model", model_cfg),
            train=_build(TrainConfig, "train", train_cfg),
        )
        resolved.validate()
        return resolved

    def validate(self) -> None:
        for name in self.model.activation_names():
            Activation.parse(name)
        LossFunction.parse(self.model.loss)
        if any(h <= 0 for h in self.model.hidden):
            raise ConfigurationError(f"Hidden layer sizes must be positive: {self.model.hidden}")
        if not self.data.corpus and not self.data.corpus_path:
            raise ConfigurationError("data needs either an inline corpus or corpus_path")

    def to_dict(self) -> Dict[str, Any]:
        return json.loads(json.dumps(asdict(self)))


def _build(cls, section: str, values: Mapping[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{section}' section: {', '.join(sorted(unknown))}"
        )
    return cls(**values)


def _read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_config_file(file)
                missing = _REQUIRED_SECTIONS - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Dict[str, Any]:
    file_presets = _file_presets()
    if name in file_presets:
        return dict(file_presets[name])
    try:
        return deepcopy(dict(_PRESETS[name]))
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def load_override(path: str | Path) -> Dict[str, Any]:
    return dict(_read_config_file(Path(path)))


def merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into ``base`` (mappings merge, everything else replaces)."""

    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            base[key] = merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(
    preset: str = "sentiment-demo",
    config_path: str | Path | None = None,
    overrides: Sequence[Mapping[str, Any]] = (),
) -> PipelineConfig:
    """Preset, then optional config file, then explicit overrides."""

    config = load_preset(preset)
    if config_path is not None:
        file_cfg = load_override(config_path)
        if _REQUIRED_SECTIONS <= set(file_cfg):
            config = json.loads(json.dumps(file_cfg))
        else:
            config = merge(config, file_cfg)
    for override in overrides:
        config = merge(config, override)
    return PipelineConfig.from_mapping(config)


__all__ = [
    "DataConfig",
    "ModelConfig",
    "PipelineConfig",
    "TrainConfig",
    "load_override",
    "load_preset",
    "merge",
    "presets",
    "resolve_config",
]
