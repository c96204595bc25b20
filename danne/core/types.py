"""Core typing contracts for danne."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from .errors import InvalidConfigurationError

Array = np.ndarray


class ActivationKind(str, enum.Enum):
    """Nonlinearity applied by every neuron of a layer."""

    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    SOFTMAX = "softmax"


class BiasMode(str, enum.Enum):
    """How the bias enters a neuron's weighted sum.

    ``ONCE`` adds the bias a single time after the synapse sum.
    ``PER_SYNAPSE`` adds it inside the sum, once per synapse, so
    it contributes ``bias * synapse_count`` to the raw sum.
    """

    ONCE = "once"
    PER_SYNAPSE = "per_synapse"


def resolve_bias_mode(value: BiasMode | str) -> BiasMode:
    try:
        return BiasMode(value)
    except ValueError as exc:
        valid = ", ".join(mode.value for mode in BiasMode)
        raise InvalidConfigurationError(
            f"Unknown bias mode {value!r}. Valid modes: {valid}"
        ) from exc


class NetworkState(str, enum.Enum):
    """Construction and training lifecycle of a :class:`Network`."""

    EMPTY = "empty"
    INPUT_BOUND = "input_bound"
    LAYERS_BUILDING = "layers_building"
    OUTPUT_BOUND = "output_bound"
    TRAINED = "trained"


@dataclass(frozen=True)
class Sample:
    """A single (inputs, target) training pair."""

    inputs: Array
    target: Array


@dataclass(frozen=True)
class ModelDescription:
    """Shape of a network: input width followed by every layer width."""

    layer_dims: List[int]
    activations: List[str]
    bias_mode: str = BiasMode.ONCE.value

    @property
    def input_width(self) -> int:
        return self.layer_dims[0]

    @property
    def output_width(self) -> int:
        return self.layer_dims[-1]


@dataclass
class EpochRecord:
    """Outputs observed during one pass over the bound samples.

    ``outputs`` holds the forward-pass result of each sample *before* the
    backward pass of that sample adjusted any weight.
    ``targets`` are the values the error was computed against, after any
    squashing. ``raw_targets`` keeps the bound labels for classification
    metrics.
    """

    epoch: int
    learning_rate: float
    outputs: Array
    targets: Array
    samples: int
    cancelled: bool = False
    raw_targets: Array | None = None


@dataclass(frozen=True)
class TrainingResult:
    """Summary returned by :meth:`danne.core.network.Network.train`."""

    epochs: int
    samples: int
    cancelled: bool
    metrics: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :meth:`danne.training.trainer.Trainer.run`."""

    epochs: int
    steps: int
    cancelled: bool = False
    metrics_path: str = ""
    manifest_path: str = ""
    summary_path: str = ""
    checkpoint_path: str = ""
