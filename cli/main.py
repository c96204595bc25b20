"""Command line entry point for danne training runs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from danne.core.initializers import available_initializers
from danne.core.types import BiasMode
from danne.data import available_datasets, coerce_vector
from danne.training import pipelines
from danne.training.checkpoints import load_network


def _format_result(result, predictions: list | None = None) -> str:
    payload = {
        "epochs": result.epochs,
        "steps": result.steps,
        "cancelled": result.cancelled,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "checkpoint": result.checkpoint_path,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    if predictions is not None:
        payload["predictions"] = predictions
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor-sigmoid",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--list-datasets", action="store_true", help="List registered datasets and exit"
    )
    parser.add_argument(
        "--dataset", choices=list(available_datasets()), help="Override the training set"
    )
    parser.add_argument("--arity", type=int, help="Input count for truth-table datasets")
    parser.add_argument("--epochs", type=int, help="Number of epochs to train")
    parser.add_argument("--lr", type=float, help="Base learning rate")
    parser.add_argument("--seed", type=int, help="Seed for the weight initializer")
    parser.add_argument(
        "--initializer", choices=available_initializers(), help="Weight initializer strategy"
    )
    parser.add_argument(
        "--bias-mode",
        choices=[mode.value for mode in BiasMode],
        help="How the bias enters each neuron's weighted sum",
    )
    parser.add_argument(
        "--squash-targets",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Pass targets through the sigmoid before computing the error",
    )
    parser.add_argument("--run-dir", type=Path, help="Directory for run artifacts")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write loss.png into the run directory"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--predict",
        action="append",
        default=[],
        metavar="X1,X2,...",
        help="Comma separated input to run through the trained network (repeatable)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def _load_override(path: Path) -> dict:
    text = path.read_text()
    if path.suffix in {".yml", ".yaml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load YAML configs") from exc
        return yaml.safe_load(text)
    return json.loads(text)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _apply_flags(config: dict, args: argparse.Namespace) -> dict:
    data_cfg = config.setdefault("data", {})
    model_cfg = config.setdefault("model", {})
    train_cfg = config.setdefault("train", {})
    if args.dataset:
        data_cfg.update({"name": args.dataset, "options": {}})
    if args.arity is not None:
        data_cfg.setdefault("options", {})["arity"] = int(args.arity)
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.lr is not None:
        train_cfg["lr"] = float(args.lr)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.initializer:
        model_cfg["initializer"] = args.initializer
    if args.bias_mode:
        model_cfg["bias_mode"] = args.bias_mode
    if args.squash_targets is not None:
        model_cfg["squash_targets"] = bool(args.squash_targets)
    if args.run_dir is not None:
        train_cfg["run_dir"] = str(args.run_dir)
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    return config


def _predict(checkpoint: str, queries: list[str]) -> list[dict]:
    network = load_network(checkpoint)
    rows = []
    for query in queries:
        inputs = coerce_vector([cell.strip() for cell in query.split(",")], "predict")
        rows.append(
            {
                "inputs": [float(v) for v in inputs],
                "output": [float(v) for v in network.feed_forward(inputs)],
            }
        )
    return rows


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.list_datasets:
        for name in available_datasets():
            print(name)
        raise SystemExit(0)

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = _load_override(args.config)
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    config = _apply_flags(config, args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)

    results = result if isinstance(result, list) else [result]
    for item in results:
        predictions = _predict(item.checkpoint_path, args.predict) if args.predict else None
        print(_format_result(item, predictions))


if __name__ == "__main__":
    main()
