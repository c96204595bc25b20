"""Single scalar neuron."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .activations import Activation, get_activation
from .errors import InputShapeError, InvalidConfigurationError, InvalidNetworkStateError
from .initializers import RandomSource, as_initializer
from .types import ActivationKind, Array, BiasMode, resolve_bias_mode


class Neuron:
    """A weighted sum followed by a nonlinearity.

    Hidden and output neurons are the same type; only the synapse count they
    are built with differs. The weight vector length is fixed at
    construction. Training mutates weights in place and never touches the
    bias.
    """

    def __init__(
        self,
        synapse_count: int,
        activation: ActivationKind | str = ActivationKind.SIGMOID,
        initializer: RandomSource | str | None = None,
        bias_mode: BiasMode | str = BiasMode.ONCE,
    ) -> None:
        if int(synapse_count) < 1:
            raise InvalidConfigurationError(
                f"A neuron needs at least one synapse, got {synapse_count}"
            )
        self.synapse_count = int(synapse_count)
        self._activation: Activation = get_activation(activation)
        self.bias_mode = resolve_bias_mode(bias_mode)
        source = as_initializer(initializer)
        self.weights: Array = np.array(
            [source.draw() for _ in range(self.synapse_count)], dtype=np.float64
        )
        self.bias = float(source.draw())
        self.last_input: Array | None = None
        self.last_net = 0.0
        self.last_output = 0.0
        self.last_error = 0.0

    @classmethod
    def from_parameters(
        cls,
        weights: Sequence[float] | Array,
        bias: float,
        activation: ActivationKind | str = ActivationKind.SIGMOID,
        bias_mode: BiasMode | str = BiasMode.ONCE,
    ) -> "Neuron":
        """Build a neuron with explicit parameters instead of random ones."""

        values = np.array(weights, dtype=np.float64).reshape(-1)
        if values.size < 1:
            raise InvalidConfigurationError("A neuron needs at least one synapse, got 0")
        neuron = cls.__new__(cls)
        neuron.synapse_count = int(values.size)
        neuron._activation = get_activation(activation)
        neuron.bias_mode = resolve_bias_mode(bias_mode)
        neuron.weights = values
        neuron.bias = float(bias)
        neuron.last_input = None
        neuron.last_net = 0.0
        neuron.last_output = 0.0
        neuron.last_error = 0.0
        return neuron

    @property
    def activation(self) -> ActivationKind:
        return self._activation.kind

    def net_input(self, inputs: Sequence[float] | Array) -> float:
        """Cache ``inputs`` and return the raw weighted sum."""

        x = np.array(inputs, dtype=np.float64).reshape(-1)
        if x.size != self.synapse_count:
            raise InputShapeError(
                f"Neuron expects {self.synapse_count} inputs, got {x.size}"
            )
        total = float(np.dot(self.weights, x))
        if self.bias_mode is BiasMode.PER_SYNAPSE:
            total += self.bias * self.synapse_count
        else:
            total += self.bias
        self.last_input = x
        self.last_net = total
        return total

    def activate(self, inputs: Sequence[float] | Array) -> float:
        """Return the activation for ``inputs`` and cache it."""

        if self._activation.layer_wide:
            raise InvalidConfigurationError(
                f"{self.activation.value} normalises across a layer; use Layer.forward"
            )
        self.last_output = self._activation.fn(self.net_input(inputs))
        return self.last_output

    def derivative(self) -> float:
        """Slope of the activation at the cached output."""

        return self._activation.derivative(self.last_output)

    def adjust_weights(
        self, error: float, learning_rate: float = 1.0, apply_learning_rate: bool = True
    ) -> None:
        """Move every weight by ``last_input_i * error`` (scaled by the rate)."""

        if self.last_input is None:
            raise InvalidNetworkStateError("adjust_weights called before activate")
        self.last_error = float(error)
        scale = self.last_error * (float(learning_rate) if apply_learning_rate else 1.0)
        self.weights += self.last_input * scale

    def __repr__(self) -> str:
        return (
            f"Neuron(synapses={self.synapse_count}, activation={self.activation.value}, "
            f"bias={self.bias:.4f})"
        )


__all__ = ["Neuron"]
