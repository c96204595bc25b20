"""Epoch driver: learning-rate policy, cooperative cancellation and sinks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..core.network import Network, emit_callbacks
from ..core.types import EpochRecord, RunResult
from .checkpoints import save_network
from .metrics import compute_metric, compute_metrics, default_metrics
from .schedules import REGISTRY as SCHEDULE_REGISTRY

logger = logging.getLogger(__name__)


class Trainer:
    """Drive a built :class:`Network` through its epochs.

    Every epoch takes its learning rate from the schedule, trains each bound
    sample once in stored order, and reports metrics to the callbacks. There
    is no shuffling and no early stopping: an uncancelled run always
    performs ``epochs * sample_count`` forward/backward cycles.
    """

    def __init__(
        self,
        network: Network,
        schedule: str = "constant",
        schedule_options: Mapping[str, Any] | None = None,
        callbacks: Sequence[object] | None = None,
        sample_callbacks: Sequence[object] | None = None,
        metric_names: Sequence[str] | str = "default",
        task_type: str = "binary",
    ) -> None:
        self.network = network
        self.schedule = SCHEDULE_REGISTRY.resolve(
            schedule, network.learning_rate, **dict(schedule_options or {})
        )
        self.callbacks = list(callbacks or [])
        self.sample_callbacks = list(sample_callbacks or [])
        self.task_type = task_type
        self.metric_names = self._resolve_metric_names(metric_names, task_type)
        self.last_metrics: Mapping[str, float] = {}

    @staticmethod
    def _resolve_metric_names(metric_names: Sequence[str] | str, task_type: str) -> list[str]:
        if isinstance(metric_names, str):
            if metric_names == "default" or metric_names.strip() == "":
                return default_metrics(task_type)
            return [m.strip() for m in metric_names.split(",") if m.strip()]
        return list(metric_names) or default_metrics(task_type)

    def run(
        self,
        epochs: int | None = None,
        *,
        cancel: Any = None,
        checkpoint_dir: str | Path | None = None,
    ) -> RunResult:
        epochs = self.network.epoch_count if epochs is None else int(epochs)
        completed = 0
        steps = 0
        cancelled = False
        for epoch in range(1, epochs + 1):
            if cancel is not None and cancel.is_set():
                cancelled = True
                break
            record = self.network.run_epoch(
                self.schedule(epoch),
                cancel=cancel,
                sample_callbacks=self.sample_callbacks,
                epoch=epoch,
            )
            steps += record.samples
            if record.cancelled:
                cancelled = True
                break
            completed += 1
            self.last_metrics = self._epoch_metrics(record)
            emit_callbacks(self.callbacks, "on_epoch", epoch, self.last_metrics)
        self.network.epochs_trained += completed

        checkpoint_path = ""
        if checkpoint_dir is not None:
            checkpoint_path = save_network(self.network, Path(checkpoint_dir) / "last.npz")
        logger.info(
            "trained %d/%d epochs (%d samples)%s",
            completed,
            epochs,
            steps,
            " - cancelled" if cancelled else "",
        )
        return RunResult(
            epochs=completed,
            steps=steps,
            cancelled=cancelled,
            checkpoint_path=checkpoint_path,
        )

    def _epoch_metrics(self, record: EpochRecord) -> Mapping[str, float]:
        metrics = {
            "loss": compute_metric(
                "mse", record.outputs, record.targets, task_type=self.task_type
            ).value,
            "learning_rate": float(record.learning_rate),
        }
        metrics.update(
            compute_metrics(
                self.metric_names,
                record.outputs,
                record.targets,
                task_type=self.task_type,
                labels=record.raw_targets,
            )
        )
        return metrics


__all__ = ["Trainer"]
