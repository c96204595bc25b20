import json
from pathlib import Path

import pytest

from cli.main import main


def test_cli_runs_preset_with_overrides(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(
        [
            "--preset",
            "xor-sigmoid",
            "--epochs",
            "3",
            "--seed",
            "2",
            "--run-dir",
            "runs/xor",
            "--predict",
            "1,0",
            "--predict",
            "0, 0",
            "--dump-config",
            "resolved.json",
        ]
    )
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["epochs"] == 3
    assert len(payload["predictions"]) == 2
    assert payload["predictions"][0]["inputs"] == [1.0, 0.0]
    run_dir = Path("runs/xor")
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()
    resolved = json.loads(Path("resolved.json").read_text())
    assert resolved["train"]["epochs"] == 3
    assert resolved["train"]["seed"] == 2


def test_cli_config_override_and_plots(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.json"
    override.write_text(json.dumps({"model": {"hidden": [2, 2]}, "train": {"epochs": 2}}))
    main(
        [
            "--preset",
            "xor-squashed",
            "--config",
            str(override),
            "--no-squash-targets",
            "--bias-mode",
            "once",
            "--enable-plots",
            "--run-dir",
            "runs/ref",
        ]
    )
    config = json.loads(Path("runs/ref/config.json").read_text())
    assert config["model"]["hidden"] == [2, 2]
    assert config["model"]["squash_targets"] is False
    assert config["model"]["bias_mode"] == "once"
    assert Path("runs/ref/loss.png").exists()


def test_cli_lists_presets_and_datasets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    assert "xor-sigmoid" in capsys.readouterr().out.split()
    with pytest.raises(SystemExit):
        main(["--list-datasets"])
    assert "half_adder" in capsys.readouterr().out.split()
