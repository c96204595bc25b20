"""Per-epoch diagnostic metrics computed from an epoch's outputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mse", "mae", "rmse"]
    if task_type in {"binary", "multiclass"}:
        return ["mse", "error_sum", "max_error", "accuracy"]
    raise ValueError(f"Unknown task type: {task_type}")


def compute_metric(
    name: str,
    outputs: Array,
    targets: Array,
    *,
    task_type: str,
    threshold: float = 0.5,
) -> MetricResult:
    key = name.lower()
    if outputs.size == 0:
        return MetricResult(name=key, value=0.0)
    diff = targets - outputs
    if key == "mse":
        value = float(np.mean(diff**2))
    elif key == "mae":
        value = float(np.mean(np.abs(diff)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean(diff**2)))
    elif key == "error_sum":
        value = float(np.sum(np.abs(diff)))
    elif key == "max_error":
        value = float(np.max(np.abs(diff)))
    elif key == "accuracy":
        if task_type == "multiclass":
            hits = np.argmax(outputs, axis=1) == np.argmax(targets, axis=1)
        else:
            # a row counts only when every output lands on the right side
            hits = np.all((outputs >= threshold) == (targets >= threshold), axis=1)
        value = float(np.mean(hits))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(
    names: Iterable[str],
    outputs: Array,
    targets: Array,
    *,
    task_type: str,
    threshold: float = 0.5,
    labels: Array | None = None,
) -> Mapping[str, float]:
    """Evaluate ``names`` in order.

    ``labels`` replaces ``targets`` for ``accuracy`` when the error targets
    were squashed and no longer sit on either side of ``threshold``.
    """

    results: Dict[str, float] = {}
    for name in names:
        truth = labels if labels is not None and name.lower() == "accuracy" else targets
        metric = compute_metric(name, outputs, truth, task_type=task_type, threshold=threshold)
        results[metric.name] = metric.value
    return results


__all__ = ["MetricResult", "compute_metric", "compute_metrics", "default_metrics"]
