"""Headless-safe training curve plotting."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, List


class PlotAdapter:
    """Epoch callback that charts training progress into ``loss.png``.

    The curve is the per-epoch mean squared error between the pre-update
    outputs and the (possibly squashed) targets, the ``loss`` entry of the
    trainer's metrics. It is drawn on a log scale because XOR style runs
    shrink the error by several orders of magnitude. When the run also
    tracks ``accuracy`` it is drawn against a second axis. Nothing is
    rendered until :meth:`close`.
    """

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._epochs: List[int] = []
        self._series: Dict[str, List[float]] = {"loss": [], "accuracy": []}
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics):
        if not self.enable_plots:
            return
        self._epochs.append(int(epoch))
        self._series["loss"].append(float(metrics.get("loss", math.nan)))
        self._series["accuracy"].append(float(metrics.get("accuracy", math.nan)))

    def close(self) -> Path | None:
        if not self.enable_plots or not self._epochs:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        losses = self._series["loss"]
        fig, ax = plt.subplots()
        ax.plot(self._epochs, losses, color="tab:blue", label="MSE")
        if all(value > 0 for value in losses):
            ax.set_yscale("log")
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Mean squared error")
        accuracy = self._series["accuracy"]
        if not all(math.isnan(value) for value in accuracy):
            twin = ax.twinx()
            twin.plot(self._epochs, accuracy, color="tab:orange", label="accuracy")
            twin.set_ylim(-0.05, 1.05)
            twin.set_ylabel("Accuracy")
        ax.set_title(f"Training curve (final MSE {losses[-1]:.4g})")
        plot_path = self.run_dir / "loss.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch
