"""Activation utilities for danne.

Derivatives take the *activated* output ``a`` rather than the raw
pre-activation, which is what the backward pass has cached on each neuron.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Sequence

import numpy as np

from .errors import InvalidConfigurationError
from .types import ActivationKind, Array

ScalarFn = Callable[[float], float]


def sigmoid(x: float) -> float:
    """Return the logistic function of ``x``."""

    return float(1.0 / (1.0 + np.exp(-x)))


def sigmoid_derivative(a: float) -> float:
    """Return the logistic slope given the logistic output ``a``."""

    return float(a * (1.0 - a))


def tanh(x: float) -> float:
    return float(np.tanh(x))


def tanh_derivative(a: float) -> float:
    return float(1.0 - a * a)


def relu(x: float) -> float:
    """Return the ReLU activation."""

    return float(max(0.0, x))


def relu_derivative(a: float) -> float:
    return 1.0 if a > 0.0 else 0.0


def softmax(values: Sequence[float] | Array) -> Array:
    """Return the softmax of ``values`` as a new array.

    The caller's sequence is never modified. The maximum is subtracted before
    exponentiating, which leaves the result unchanged but avoids overflow.
    """

    z = np.array(values, dtype=np.float64)
    if z.size == 0:
        return z
    e = np.exp(z - z.max())
    return e / e.sum()


def softmax_derivative(a: float) -> float:
    """Diagonal of the softmax Jacobian for a per-neuron error signal."""

    return float(a * (1.0 - a))


@dataclass(frozen=True)
class Activation:
    """A forward function paired with its derivative-from-output."""

    kind: ActivationKind
    fn: ScalarFn | None
    derivative: ScalarFn

    @property
    def layer_wide(self) -> bool:
        return self.fn is None


ACTIVATIONS: Dict[ActivationKind, Activation] = {
    ActivationKind.SIGMOID: Activation(ActivationKind.SIGMOID, sigmoid, sigmoid_derivative),
    ActivationKind.TANH: Activation(ActivationKind.TANH, tanh, tanh_derivative),
    ActivationKind.RELU: Activation(ActivationKind.RELU, relu, relu_derivative),
    # softmax normalises across the whole layer, see Layer.forward
    ActivationKind.SOFTMAX: Activation(ActivationKind.SOFTMAX, None, softmax_derivative),
}

_ALIASES = {
    "sigmoid": ActivationKind.SIGMOID,
    "logistic": ActivationKind.SIGMOID,
    "tanh": ActivationKind.TANH,
    "hyperbolic_tangent": ActivationKind.TANH,
    "hyperbolictangent": ActivationKind.TANH,
    "relu": ActivationKind.RELU,
    "softmax": ActivationKind.SOFTMAX,
}


def resolve_kind(kind: ActivationKind | str) -> ActivationKind:
    """Return the :class:`ActivationKind` for an enum member or a name."""

    if isinstance(kind, ActivationKind):
        return kind
    key = str(kind).strip().lower().replace("-", "_")
    try:
        return _ALIASES[key]
    except KeyError as exc:
        available = ", ".join(sorted(_ALIASES))
        raise InvalidConfigurationError(
            f"Unknown activation {kind!r}. Available activations: {available}"
        ) from exc


def get_activation(kind: ActivationKind | str) -> Activation:
    return ACTIVATIONS[resolve_kind(kind)]


__all__ = [
    "ACTIVATIONS",
    "Activation",
    "get_activation",
    "relu",
    "relu_derivative",
    "resolve_kind",
    "sigmoid",
    "sigmoid_derivative",
    "softmax",
    "softmax_derivative",
    "tanh",
    "tanh_derivative",
]
