import numpy as np
import pytest

from danne.training.metrics import compute_metric, compute_metrics, default_metrics
from danne.training.schedules import REGISTRY


def test_constant_schedule():
    schedule = REGISTRY.resolve("constant", 0.1)
    assert [schedule(e) for e in (1, 10, 1000)] == [0.1, 0.1, 0.1]


def test_decaying_schedules_start_at_base_rate():
    step = REGISTRY.resolve("step", 1.0, step_size=2, gamma=0.5)
    assert [step(e) for e in (1, 2, 3, 4, 5)] == [1.0, 1.0, 0.5, 0.5, 0.25]
    exponential = REGISTRY.resolve("exponential", 1.0, gamma=0.5)
    assert exponential(1) == 1.0
    assert exponential(3) == pytest.approx(0.25)
    inverse = REGISTRY.resolve("inverse_time", 1.0, decay=1.0)
    assert inverse(1) == 1.0
    assert inverse(2) == pytest.approx(0.5)


def test_unknown_schedule_and_bad_options():
    with pytest.raises(KeyError, match="constant"):
        REGISTRY.resolve("cosine", 0.1)
    with pytest.raises(ValueError):
        REGISTRY.resolve("step", 0.1, step_size=0)(1)


def test_metrics_for_binary_outputs():
    outputs = np.array([[0.1], [0.8], [0.4], [0.2]])
    targets = np.array([[0.0], [1.0], [1.0], [0.0]])
    metrics = compute_metrics(default_metrics("binary"), outputs, targets, task_type="binary")
    assert metrics["accuracy"] == pytest.approx(0.75)
    assert metrics["error_sum"] == pytest.approx(0.1 + 0.2 + 0.6 + 0.2)
    assert metrics["max_error"] == pytest.approx(0.6)
    assert metrics["mse"] == pytest.approx(np.mean([0.01, 0.04, 0.36, 0.04]))


def test_multiclass_accuracy_uses_argmax():
    outputs = np.array([[0.7, 0.3], [0.4, 0.6]])
    targets = np.array([[1.0, 0.0], [1.0, 0.0]])
    assert compute_metric("accuracy", outputs, targets, task_type="multiclass").value == 0.5


def test_regression_defaults_and_errors():
    assert default_metrics("regression") == ["mse", "mae", "rmse"]
    with pytest.raises(ValueError):
        default_metrics("ranking")
    with pytest.raises(KeyError):
        compute_metric("f1", np.ones((1, 1)), np.ones((1, 1)), task_type="binary")
    empty = np.zeros((0, 1))
    assert compute_metric("mse", empty, empty, task_type="binary").value == 0.0
