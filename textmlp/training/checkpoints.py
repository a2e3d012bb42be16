"""JSON persistence for network snapshots."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from ..core.types import Snapshot

logger = logging.getLogger(__name__)


class SnapshotEncoder(json.JSONEncoder):
    """JSON encoder that understands numpy arrays and scalars."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        return super().default(obj)


def save_snapshot(path: str | Path, snapshot: Snapshot) -> str:
    """Write ``snapshot`` to ``path`` as pretty-printed JSON."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(snapshot, cls=SnapshotEncoder, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info("Saved model snapshot to %s", path)
    return str(path)


def load_snapshot(path: str | Path) -> Snapshot:
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a model snapshot")
    logger.info("Loaded model snapshot from %s", path)
    return data


def checkpoint_path(model_path: str | Path, epoch: int, *, epoch_suffix: bool) -> Path:
    """Path for a periodic checkpoint, optionally tagged with ``epoch``."""

    model_path = Path(model_path)
    if not epoch_suffix:
        return model_path
    return model_path.with_name(f"{model_path.stem}_{epoch}{model_path.suffix}")


__all__ = ["SnapshotEncoder", "checkpoint_path", "load_snapshot", "save_snapshot"]
