"""Metric sinks that receive ``on_epoch``/``on_step`` callbacks."""

from __future__ import annotations

import csv
import json
import logging
import subprocess
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


def _numeric(metrics: Mapping[str, float]) -> dict[str, float]:
    return {k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))}


class JsonlSink:
    """Append one JSON record per epoch (or step) to a fresh file."""

    def __init__(
        self,
        path: str | Path,
        *,
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.seed = seed
        self.sha = sha or _git_sha()

    def _write(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = {"epoch": int(epoch), "seed": self.seed, "sha": self.sha}
        record.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        self._write(step, metrics)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self._write(epoch, metrics)

    __call__ = on_epoch


class CsvSink:
    """Write metrics to CSV; the header comes from the first row's keys."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self._fieldnames: list[str] | None = None

    def _write(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row: dict[str, float] = {"epoch": int(epoch)}
        row.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            if self._fieldnames is None:
                self._fieldnames = sorted(row)
                writer = csv.DictWriter(handle, fieldnames=self._fieldnames, extrasaction="ignore")
                writer.writeheader()
            else:
                writer = csv.DictWriter(handle, fieldnames=self._fieldnames, extrasaction="ignore")
            writer.writerow(row)

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        self._write(step, metrics)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self._write(epoch, metrics)


class LoggingSink:
    """Log every ``every``-th epoch's metrics at INFO."""

    def __init__(self, every: int = 1, *, name: str = "danne.progress") -> None:
        if every < 1:
            raise ValueError("every must be >= 1")
        self.every = int(every)
        self._logger = logging.getLogger(name)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if epoch % self.every:
            return
        rendered = " ".join(f"{k}={v:.6g}" for k, v in sorted(_numeric(metrics).items()))
        self._logger.info("epoch %d %s", epoch, rendered)

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        if step % self.every:
            return
        rendered = " ".join(f"{k}={v:.6g}" for k, v in sorted(_numeric(metrics).items()))
        self._logger.debug("step %d %s", step, rendered)


__all__ = ["CsvSink", "JsonlSink", "LoggingSink"]
