"""Core numerical primitives for danne."""

from . import activations, errors, initializers, types
from .layer import Layer
from .network import Network, create_network
from .neuron import Neuron

__all__ = [
    "Layer",
    "Network",
    "Neuron",
    "activations",
    "create_network",
    "errors",
    "initializers",
    "types",
]
