"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, MutableMapping

import numpy as np

from ..core.types import Array, Sample

TASK_TYPES = {"regression", "multiclass", "binary"}


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Number of input columns, i.e. the synapse count of the first hidden
        layer.
    d_out:
        Number of target columns, i.e. the width of the output layer.
    task_type:
        One of ``{"regression", "multiclass", "binary"}``; picks the default
        diagnostic metrics.
    extra:
        Free-form metadata such as column names.
    """

    d_in: int
    d_out: int
    task_type: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetSpec:
    """A named, fully in-memory training set."""

    name: str
    inputs: Array
    targets: Array
    data_spec: DataSpec
    provenance: Dict[str, Any]

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    def samples(self) -> Iterator[Sample]:
        """Yield every row as a :class:`Sample`, in stored order."""

        for x, y in zip(self.inputs, self.targets):
            yield Sample(inputs=x.copy(), target=y.copy())


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` for ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.data_spec.task_type not in TASK_TYPES:
        raise ValueError(f"Invalid task type: {spec.data_spec.task_type}")
    if spec.inputs.ndim != 2 or spec.targets.ndim != 2:
        raise ValueError(f"Dataset {spec.name!r} must hold two-dimensional arrays")
    if spec.inputs.shape[0] != spec.targets.shape[0]:
        raise ValueError(
            f"Dataset {spec.name!r} has {spec.inputs.shape[0]} input rows but "
            f"{spec.targets.shape[0]} target rows"
        )
    if spec.inputs.shape[1] != spec.data_spec.d_in or spec.targets.shape[1] != spec.data_spec.d_out:
        raise ValueError(f"Dataset {spec.name!r} arrays disagree with its DataSpec")
    if not np.all(np.isfinite(spec.inputs)) or not np.all(np.isfinite(spec.targets)):
        raise ValueError(f"Dataset {spec.name!r} contains non-finite values")


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
