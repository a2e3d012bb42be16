"""Headless-safe plotting adapter for training curves."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Collect per-epoch loss/accuracy and optionally emit a matplotlib figure."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        loss = float(metrics.get("loss", 0.0))
        accuracy = float(metrics.get("accuracy", float("nan")))
        self._history.append((epoch, loss, accuracy))

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, losses, accuracies = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, losses, label="loss")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Loss")
        ax.set_title("Training Curve")
        acc_ax = ax.twinx()
        acc_ax.plot(epochs, accuracies, color="tab:orange", label="accuracy")
        acc_ax.set_ylabel("Accuracy")
        acc_ax.set_ylim(0.0, 1.05)
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch
