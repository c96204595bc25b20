"""Fixed-size collection of neurons sharing one input vector."""

from __future__ import annotations

from typing import Iterator, List, Sequence

import numpy as np

from .activations import resolve_kind, softmax
from .errors import InputShapeError, InvalidConfigurationError
from .initializers import RandomSource, as_initializer
from .neuron import Neuron
from .types import ActivationKind, Array, BiasMode


class Layer:
    """Ordered neurons that all read the same input and share an activation.

    The layer has no backward pass of its own: error propagation needs the
    weights of two adjacent layers and is orchestrated by the network.
    """

    def __init__(
        self,
        neuron_count: int,
        synapse_count: int,
        activation: ActivationKind | str = ActivationKind.SIGMOID,
        initializer: RandomSource | str | None = None,
        bias_mode: BiasMode | str = BiasMode.ONCE,
        *,
        min_neurons: int = 1,
    ) -> None:
        if int(neuron_count) < max(1, min_neurons):
            raise InvalidConfigurationError(
                f"Layer needs at least {max(1, min_neurons)} neurons, got {neuron_count}"
            )
        if int(synapse_count) < 1:
            raise InvalidConfigurationError(
                f"Layer needs at least one synapse per neuron, got {synapse_count}"
            )
        kind = resolve_kind(activation)
        source = as_initializer(initializer)
        self.activation = kind
        self.synapse_count = int(synapse_count)
        self.neurons: List[Neuron] = [
            Neuron(self.synapse_count, kind, source, bias_mode)
            for _ in range(int(neuron_count))
        ]

    @classmethod
    def from_neurons(cls, neurons: Sequence[Neuron]) -> "Layer":
        """Wrap already built neurons, checking they agree on shape."""

        neurons = list(neurons)
        if not neurons:
            raise InvalidConfigurationError("Layer needs at least 1 neurons, got 0")
        synapses = {n.synapse_count for n in neurons}
        kinds = {n.activation for n in neurons}
        if len(synapses) != 1:
            raise InvalidConfigurationError(f"Mixed synapse counts in layer: {sorted(synapses)}")
        if len(kinds) != 1:
            raise InvalidConfigurationError(
                f"Mixed activations in layer: {sorted(k.value for k in kinds)}"
            )
        layer = cls.__new__(cls)
        layer.activation = kinds.pop()
        layer.synapse_count = synapses.pop()
        layer.neurons = neurons
        return layer

    def __len__(self) -> int:
        return len(self.neurons)

    def __iter__(self) -> Iterator[Neuron]:
        return iter(self.neurons)

    def __getitem__(self, index: int) -> Neuron:
        return self.neurons[index]

    @property
    def neuron_count(self) -> int:
        return len(self.neurons)

    def forward(self, inputs: Sequence[float] | Array) -> Array:
        x = np.asarray(inputs, dtype=np.float64).reshape(-1)
        if x.size != self.synapse_count:
            raise InputShapeError(
                f"Layer expects {self.synapse_count} inputs, got {x.size}"
            )
        if self.activation is ActivationKind.SOFTMAX:
            raw = [neuron.net_input(x) for neuron in self.neurons]
            shares = softmax(raw)
            for neuron, share in zip(self.neurons, shares):
                neuron.last_output = float(share)
            return shares
        return np.array([neuron.activate(x) for neuron in self.neurons], dtype=np.float64)

    @property
    def outputs(self) -> Array:
        return np.array([n.last_output for n in self.neurons], dtype=np.float64)

    @property
    def errors(self) -> Array:
        return np.array([n.last_error for n in self.neurons], dtype=np.float64)

    @property
    def weights(self) -> Array:
        """Copy of the weights as a ``(neuron_count, synapse_count)`` matrix."""

        return np.stack([n.weights.copy() for n in self.neurons])

    @property
    def biases(self) -> Array:
        return np.array([n.bias for n in self.neurons], dtype=np.float64)

    def __repr__(self) -> str:
        return (
            f"Layer(neurons={self.neuron_count}, synapses={self.synapse_count}, "
            f"activation={self.activation.value})"
        )


__all__ = ["Layer"]
