"""Exceptions raised by the network engine.

Every error is a precondition or configuration violation. None of them are
retried: they surface to the caller as soon as they are detected.
"""

from __future__ import annotations


class NeuralNetError(ValueError):
    """Base class for all danne errors."""


class NotEnoughTrainingDataError(NeuralNetError):
    """The training set has too few rows or columns, or ragged rows."""


class NotEnoughHiddenNeuronsError(NeuralNetError):
    """A hidden layer was requested with fewer than two neurons."""


class InvalidOutputShapeError(NotEnoughTrainingDataError):
    """Training targets disagree with the inputs or have zero width."""


class NumericParseError(NeuralNetError):
    """A raw training value could not be coerced to a float."""


class InvalidNetworkStateError(NeuralNetError, RuntimeError):
    """An operation was attempted before the network was ready for it."""


class InvalidConfigurationError(NeuralNetError):
    """A neuron, layer, initializer or checkpoint is misconfigured."""


class InputShapeError(NeuralNetError):
    """A vector does not match the width expected by a neuron or layer."""


__all__ = [
    "NeuralNetError",
    "NotEnoughTrainingDataError",
    "NotEnoughHiddenNeuronsError",
    "InvalidOutputShapeError",
    "NumericParseError",
    "InvalidNetworkStateError",
    "InvalidConfigurationError",
    "InputShapeError",
]
