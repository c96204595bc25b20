"""Learning-rate policies applied by the trainer once per epoch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable

PolicyFn = Callable[..., float]


@dataclass(frozen=True)
class Schedule:
    """A policy bound to its base rate and options; call it with an epoch index.

    Epoch indices start at 1, so every policy returns the base rate for the
    first epoch.
    """

    name: str
    base_rate: float
    fn: PolicyFn
    options: Dict[str, Any]

    def __call__(self, epoch: int) -> float:
        return float(self.fn(self.base_rate, max(0, int(epoch) - 1), **self.options))


class ScheduleRegistry:
    """Central registry for learning-rate policies."""

    def __init__(self) -> None:
        self._registry: Dict[str, PolicyFn] = {}

    def register(self, name: str, fn: PolicyFn) -> None:
        self._registry[name] = fn

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str, base_rate: float, **options: Any) -> Schedule:
        if name not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown schedule {name!r}. Available schedules: {available}")
        return Schedule(
            name=name, base_rate=float(base_rate), fn=self._registry[name], options=options
        )


REGISTRY = ScheduleRegistry()


def _constant(rate: float, elapsed: int) -> float:
    return rate


def _step(rate: float, elapsed: int, step_size: int = 1000, gamma: float = 0.5) -> float:
    if step_size < 1:
        raise ValueError("step_size must be >= 1")
    return rate * gamma ** (elapsed // step_size)


def _exponential(rate: float, elapsed: int, gamma: float = 0.999) -> float:
    return rate * gamma**elapsed


def _inverse_time(rate: float, elapsed: int, decay: float = 1e-3) -> float:
    return rate / (1.0 + decay * elapsed)


REGISTRY.register("constant", _constant)
REGISTRY.register("step", _step)
REGISTRY.register("exponential", _exponential)
REGISTRY.register("inverse_time", _inverse_time)

__all__ = ["REGISTRY", "Schedule", "ScheduleRegistry"]
