"""Labelled text corpora for the bag-of-words classifier."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Mapping, Sequence

import numpy as np
import pandas as pd
import yaml

from ..core.errors import InputError
from ..core.types import Batch
from .vocabulary import Vocabulary


@dataclass(frozen=True)
class Document:
    text: str
    label: str


@dataclass(frozen=True)
class Corpus:
    """Ordered documents plus the label set used for one-hot encoding."""

    documents: List[Document]
    labels: List[str]

    @classmethod
    def from_records(
        cls, records: Iterable[Mapping[str, object]], labels: Sequence[str] | None = None
    ) -> "Corpus":
        documents: List[Document] = []
        for idx, record in enumerate(records):
            if "text" not in record or "label" not in record:
                raise InputError(f"Corpus entry {idx} needs 'text' and 'label' fields")
            documents.append(Document(text=str(record["text"]), label=str(record["label"])))
        if labels is None:
            # first-seen order keeps label indices stable across runs
            labels = list(dict.fromkeys(doc.label for doc in documents))
        labels = [str(label) for label in labels]
        unknown = sorted({doc.label for doc in documents} - set(labels))
        if unknown:
            raise InputError(f"Corpus uses labels {unknown} not listed in {labels}")
        return cls(documents=documents, labels=labels)

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    @property
    def texts(self) -> List[str]:
        return [doc.text for doc in self.documents]

    def build_vocabulary(self) -> Vocabulary:
        return Vocabulary.build(self.texts, labels=self.labels)

    def encode(self, vocabulary: Vocabulary) -> Batch:
        """Stack bag-of-words features and one-hot targets for every document."""

        if not self.documents:
            raise InputError("Corpus is empty")
        inputs = vocabulary.vectorize(self.texts)
        targets = vocabulary.one_hot([doc.label for doc in self.documents])
        return Batch(inputs=inputs, targets=targets)


def _read_records(path: Path) -> tuple[list, list | None]:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        missing = {"text", "label"} - set(df.columns)
        if missing:
            raise InputError(f"{path.name} is missing columns: {', '.join(sorted(missing))}")
        return df[["text", "label"]].to_dict(orient="records"), None
    text = path.read_text(encoding="utf-8")
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or []
    elif suffix == ".json":
        data = json.loads(text or "[]")
    else:
        raise ValueError(f"Unsupported corpus file type: {path.suffix}")
    if isinstance(data, Mapping):
        return list(data.get("documents", [])), data.get("labels")
    if not isinstance(data, list):
        raise InputError(f"{path.name} must contain a list of documents")
    return data, None


def load_corpus(path: str | Path, labels: Sequence[str] | None = None) -> Corpus:
    """Load a corpus from a CSV (``text,label`` columns), JSON or YAML file."""

    records, file_labels = _read_records(Path(path))
    return Corpus.from_records(records, labels=labels if labels is not None else file_labels)


def shuffled_batches(
    batch: Batch, batch_size: int | None, rng: np.random.Generator
) -> List[Batch]:
    """Permute ``batch`` with ``rng`` and split it into chunks of ``batch_size``."""

    order = rng.permutation(len(batch))
    size = len(batch) if not batch_size else int(batch_size)
    batches: List[Batch] = []
    for start in range(0, len(batch), size):
        idx = order[start : start + size]
        batches.append(Batch(inputs=batch.inputs[idx], targets=batch.targets[idx]))
    return batches


__all__ = ["Corpus", "Document", "load_corpus", "shuffled_batches"]
