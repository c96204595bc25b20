from pathlib import Path

from danne.training import pipelines


def test_summary_outputs_are_deterministic(tmp_path):
    config = {
        "data": {"name": "half_adder", "options": {}},
        "model": {"hidden": [4], "initializer": "mersenne", "bias_mode": "per_synapse"},
        "train": {
            "epochs": 6,
            "seed": 55,
            "lr": 0.3,
            "schedule": "exponential",
            "schedule_options": {"gamma": 0.9},
            "run_dir": str(tmp_path / "run_a"),
        },
    }

    first = pipelines.run_pipeline(config)
    summary_a = Path(first.summary_path).read_bytes()
    metrics_a = Path(first.metrics_path).read_bytes()

    config["train"]["run_dir"] = str(tmp_path / "run_b")
    second = pipelines.run_pipeline(config)
    summary_b = Path(second.summary_path).read_bytes()
    metrics_b = Path(second.metrics_path).read_bytes()

    assert metrics_a == metrics_b
    assert summary_a == summary_b
    assert b'"predictions"' in summary_a
