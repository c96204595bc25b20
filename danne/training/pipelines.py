"""Config-driven runs: presets, single runs and seed/initializer sweeps."""

from __future__ import annotations

import itertools
import json
import logging
import os
import time
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from ..core.network import Network
from ..core.types import ModelDescription, RunResult
from ..data import DatasetSpec, get_dataset
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, LoggingSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor-sigmoid": {
        "data": {"name": "xor", "options": {"arity": 2}},
        "model": {
            "hidden": [4],
            "hidden_activation": "sigmoid",
            "output_activation": "sigmoid",
            "initializer": "mersenne",
            "bias_mode": "once",
            "squash_targets": False,
            "apply_learning_rate": True,
        },
        "train": {"epochs": 10000, "lr": 0.1, "seed": 7, "schedule": "constant"},
    },
    "xor-tanh": {
        "data": {"name": "xor", "options": {"arity": 2}},
        "model": {
            "hidden": [4],
            "hidden_activation": "tanh",
            "output_activation": "sigmoid",
            "initializer": "mersenne",
        },
        "train": {"epochs": 5000, "lr": 0.1, "seed": 3},
    },
    "xor-parity3": {
        "data": {"name": "xor", "options": {"arity": 3}},
        "model": {"hidden": [6, 4], "hidden_activation": "sigmoid", "initializer": "mersenne"},
        "train": {"epochs": 10000, "lr": 0.2, "seed": 11},
    },
    "half-adder": {
        "data": {"name": "half_adder", "options": {}},
        "model": {"hidden": [4], "hidden_activation": "sigmoid", "initializer": "mersenne"},
        "train": {"epochs": 10000, "lr": 0.2, "seed": 5},
    },
    "xor-squashed": {
        "data": {"name": "xor", "options": {"arity": 2}},
        "model": {
            "hidden": [4],
            "hidden_activation": "sigmoid",
            "output_activation": "sigmoid",
            "initializer": "mersenne",
            "bias_mode": "per_synapse",
            "squash_targets": True,
            "apply_learning_rate": True,
        },
        "train": {"epochs": 10000, "lr": 0.1, "seed": 0},
    },
    "xor-seed-sweep": {
        "sweep": {"seeds": [0, 1, 2, 3], "initializers": ["mersenne", "random"]},
        "data": {"name": "xor", "options": {"arity": 2}},
        "model": {"hidden": [4], "hidden_activation": "sigmoid"},
        "train": {"epochs": 2000, "lr": 0.5},
    },
}


_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def _read_preset_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load YAML presets") from exc
        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError(f"Unsupported preset file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Preset {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = _read_preset_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    if name not in _PRESETS:
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset {name!r}. Available presets: {available}")
    return deepcopy(_PRESETS[name])


def run_pipeline(
    config: Mapping[str, object], *, cancel: Any = None
) -> RunResult | List[RunResult]:
    """Train the run(s) ``config`` describes and write their artifacts."""

    if "sweep" in config:
        return _run_sweep(config, cancel=cancel)
    return _train_single(config, cancel=cancel)


class _MetricsCapture:
    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []
        self.last: Mapping[str, float] = {}

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        payload = {k: float(v) for k, v in metrics.items()}
        self.history.append((int(epoch), payload))
        self.last = payload


def _run_sweep(config: Mapping[str, object], *, cancel: Any = None) -> List[RunResult]:
    sweep_cfg = dict(config["sweep"])
    base_train = dict(config.get("train", {}))
    base_model = dict(config.get("model", {}))
    seeds = sweep_cfg.get("seeds", [base_train.get("seed", 0)])
    initializers = sweep_cfg.get("initializers", [base_model.get("initializer", "mersenne")])
    rates = sweep_cfg.get("lrs", [base_train.get("lr", 1.0)])
    root = _resolve_run_dir(base_train, str(config["data"]["name"]))

    results: List[RunResult] = []
    for seed, initializer, lr in itertools.product(seeds, initializers, rates):
        cfg = deepcopy(dict(config))
        cfg.pop("sweep", None)
        cfg.setdefault("model", {})["initializer"] = initializer
        train_cfg = cfg.setdefault("train", {})
        train_cfg.update({"seed": seed, "lr": lr})
        train_cfg["run_dir"] = str(root / f"{initializer}-seed{seed}-lr{lr}")
        results.append(_train_single(cfg, cancel=cancel))
        if cancel is not None and cancel.is_set():
            break
    return results


def build_network(
    dataset: DatasetSpec, model_cfg: Mapping[str, object], train_cfg: Mapping[str, object]
) -> Network:
    """Build and bind a network for ``dataset`` from the model/train sections."""

    seed = train_cfg.get("seed")
    network = Network(
        learning_rate=float(train_cfg.get("lr", 1.0)),
        epoch_count=int(train_cfg.get("epochs", 2000)),
        apply_learning_rate=bool(model_cfg.get("apply_learning_rate", True)),
        squash_targets=bool(model_cfg.get("squash_targets", False)),
        bias_mode=str(model_cfg.get("bias_mode", "once")),
        initializer=str(model_cfg.get("initializer", "mersenne")),
        seed=int(seed) if seed is not None else None,
    )
    network.set_training_input(dataset.inputs)
    hidden = _build_hidden(model_cfg)
    for width, activation in zip(hidden, _hidden_activations(model_cfg, len(hidden))):
        network.add_hidden_layer(width, activation)
    network.set_training_output(dataset.targets, str(model_cfg.get("output_activation", "sigmoid")))
    return network


def _train_single(config: Mapping[str, object], *, cancel: Any = None) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    network = build_network(dataset, model_cfg, train_cfg)
    hidden_dims = _build_hidden(model_cfg)
    seed = train_cfg.get("seed")

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    metrics_cfg = train_cfg.get("metrics", "default")
    _log_startup_summary(
        dataset_name=dataset.name,
        description=network.describe(),
        metrics=metrics_cfg if isinstance(metrics_cfg, str) else ",".join(metrics_cfg),
        initializer=str(model_cfg.get("initializer", "mersenne")),
        param_count=network.parameter_count(),
        run_dir=run_dir,
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    capture = _MetricsCapture()
    callbacks: list[object] = [jsonl, csv_sink, plots, capture]
    log_every = int(train_cfg.get("log_every", 0))
    if log_every > 0:
        callbacks.append(LoggingSink(every=log_every))

    trainer = Trainer(
        network,
        schedule=str(train_cfg.get("schedule", "constant")),
        schedule_options=train_cfg.get("schedule_options"),
        callbacks=callbacks,
        metric_names=metrics_cfg,
        task_type=dataset.data_spec.task_type,
    )
    result = trainer.run(int(train_cfg.get("epochs", 2000)), cancel=cancel, checkpoint_dir=run_dir)
    plots.close()

    predictions = predict_dataset(network, dataset)
    (run_dir / "predictions.json").write_text(json.dumps(predictions, indent=2))

    safe_config = _safe_config(config, hidden_dims)
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        network=network.describe(),
    )
    summary_path = write_summary(
        jsonl.path,
        run_dir / "summary.json",
        tail=int(train_cfg.get("summary_tail", 32)),
        predictions=predictions,
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    if capture.last:
        logger.info("final epoch metrics: %s", json.dumps(capture.last, sort_keys=True))

    return RunResult(
        epochs=result.epochs,
        steps=result.steps,
        cancelled=result.cancelled,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        checkpoint_path=result.checkpoint_path,
    )


def predict_dataset(network: Network, dataset: DatasetSpec) -> list[dict[str, list[float]]]:
    """Feed every dataset row through ``network`` and pair it with its target."""

    rows = []
    for sample in dataset.samples():
        output = network.feed_forward(sample.inputs)
        rows.append(
            {
                "inputs": [float(v) for v in sample.inputs],
                "target": [float(v) for v in sample.target],
                "output": [float(v) for v in output],
            }
        )
    return rows


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    root = Path(os.environ.get("DANNE_RUN_ROOT", "runs"))
    return root / time.strftime("%Y%m%d-%H%M%S") / dataset


def _build_hidden(model_cfg: Mapping[str, object]) -> List[int]:
    if "hidden" in model_cfg:
        return [int(h) for h in model_cfg["hidden"]]  # type: ignore[union-attr]
    hidden_dim = int(model_cfg.get("hidden_dim", 4))
    return [hidden_dim for _ in range(int(model_cfg.get("depth", 1)))]


def _hidden_activations(model_cfg: Mapping[str, object], depth: int) -> Sequence[str]:
    activation = model_cfg.get("hidden_activation", "sigmoid")
    if isinstance(activation, str):
        return [activation] * depth
    activations = [str(a) for a in activation]  # type: ignore[union-attr]
    if len(activations) != depth:
        raise ValueError(
            f"hidden_activation lists {len(activations)} entries for {depth} hidden layers"
        )
    return activations


def _safe_config(config: Mapping[str, object], hidden_dims: Sequence[int]) -> Mapping[str, object]:
    copied = json.loads(json.dumps(config))
    copied.setdefault("model", {})["hidden"] = list(hidden_dims)
    return copied


def _log_startup_summary(
    *,
    dataset_name: str,
    description: ModelDescription,
    metrics: str,
    initializer: str,
    param_count: int,
    run_dir: Path,
) -> None:
    logger.info("=== danne run ===")
    logger.info("Dataset       : %s", dataset_name)
    logger.info("Dimensions    : %s", description.layer_dims)
    logger.info("Activations   : %s", ", ".join(description.activations))
    logger.info("Bias mode     : %s", description.bias_mode)
    logger.info("Initializer   : %s", initializer)
    logger.info("Metrics       : %s", metrics)
    logger.info("Parameters    : %d", param_count)
    logger.info("Run directory : %s", run_dir)


__all__ = ["build_network", "load_preset", "predict_dataset", "presets", "run_pipeline"]
