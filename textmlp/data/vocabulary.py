"""Binary bag-of-words vocabulary and one-hot label encoding."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

import numpy as np
from sklearn.feature_extraction.text import CountVectorizer

from ..core.errors import InputError
from ..core.types import Array


def _vectorizer(vocabulary: Sequence[str] | None = None) -> CountVectorizer:
    # whitespace tokens, case preserved, presence only
    return CountVectorizer(
        tokenizer=str.split,
        token_pattern=None,
        lowercase=False,
        binary=True,
        vocabulary=vocabulary,
    )


@dataclass(frozen=True)
class Vocabulary:
    """Sorted word list plus the ordered label names of a classifier."""

    words: List[str]
    labels: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, texts: Iterable[str], labels: Sequence[str] = ()) -> "Vocabulary":
        """Collect every whitespace-separated word in ``texts``, sorted."""

        texts = list(texts)
        if not texts:
            raise InputError("Cannot build a vocabulary from an empty corpus")
        vectorizer = _vectorizer()
        try:
            vectorizer.fit(texts)
        except ValueError as exc:
            raise InputError("Corpus contains no words") from exc
        words = sorted(str(word) for word in vectorizer.get_feature_names_out())
        return cls(words=words, labels=list(labels))

    @property
    def size(self) -> int:
        return len(self.words)

    def __len__(self) -> int:
        return len(self.words)

    def vectorize(self, texts: Sequence[str]) -> Array:
        """Return a ``(len(texts), size)`` matrix of 0/1 word-presence features."""

        if not texts or not self.words:
            return np.zeros((len(texts), self.size), dtype=np.float64)
        matrix = _vectorizer(self.words).transform(list(texts))
        return matrix.toarray().astype(np.float64)

    def vectorize_one(self, text: str) -> Array:
        return self.vectorize([text])[0]

    def label_index(self, label: str) -> int:
        try:
            return self.labels.index(label)
        except ValueError as exc:
            raise InputError(f"Unknown label {label!r}; expected one of {self.labels}") from exc

    def one_hot(self, labels: Sequence[str]) -> Array:
        """Encode ``labels`` as rows of a one-hot matrix ordered like ``self.labels``."""

        indices = [self.label_index(label) for label in labels]
        eye = np.eye(len(self.labels), dtype=np.float64)
        return eye[indices] if indices else np.zeros((0, len(self.labels)), dtype=np.float64)

    def to_dict(self) -> Mapping[str, List[str]]:
        return {"vocabulary": list(self.words), "labels": list(self.labels)}

    def save(self, path: str | Path) -> str:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        return str(path)

    @classmethod
    def load(cls, path: str | Path) -> "Vocabulary":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, Mapping) or "vocabulary" not in data:
            raise InputError(f"{path} is not a vocabulary document")
        return cls(words=list(data["vocabulary"]), labels=list(data.get("labels", [])))


__all__ = ["Vocabulary"]
