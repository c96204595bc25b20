"""danne: a scalar, per-sample feed-forward neural network engine."""

from .core.errors import (
    InputShapeError,
    InvalidConfigurationError,
    InvalidNetworkStateError,
    InvalidOutputShapeError,
    NeuralNetError,
    NotEnoughHiddenNeuronsError,
    NotEnoughTrainingDataError,
    NumericParseError,
)
from .core.layer import Layer
from .core.network import Network, create_network
from .core.neuron import Neuron
from .core.types import ActivationKind, BiasMode, NetworkState
from .training import Trainer, load_network, run_pipeline, save_network

__version__ = "0.1.0"

__all__ = [
    "ActivationKind",
    "BiasMode",
    "InputShapeError",
    "InvalidConfigurationError",
    "InvalidNetworkStateError",
    "InvalidOutputShapeError",
    "Layer",
    "Network",
    "NetworkState",
    "NeuralNetError",
    "Neuron",
    "NotEnoughHiddenNeuronsError",
    "NotEnoughTrainingDataError",
    "NumericParseError",
    "Trainer",
    "__version__",
    "create_network",
    "load_network",
    "run_pipeline",
    "save_network",
]
