"""Feed-forward network: construction state machine, forward and backward passes.

A network is built incrementally::

    net = create_network(learning_rate=0.1, epoch_count=2000)
    net.set_training_input([[0, 0], [1, 0], [0, 1], [1, 1]])
    net.add_hidden_layer(4, ActivationKind.SIGMOID)
    net.set_training_output([[0], [1], [1], [0]])
    net.train()
    net.feed_forward([1, 0])

Training is strictly per sample: every sample runs one forward pass and
then one backward pass that adjusts each neuron's weights in place.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Sequence

import numpy as np

from ..data.utils import coerce_matrix, coerce_vector
from .activations import sigmoid
from .errors import (
    InputShapeError,
    InvalidConfigurationError,
    InvalidNetworkStateError,
    InvalidOutputShapeError,
    NotEnoughHiddenNeuronsError,
    NotEnoughTrainingDataError,
)
from .initializers import RandomSource, as_initializer
from .layer import Layer
from .types import (
    ActivationKind,
    Array,
    BiasMode,
    EpochRecord,
    ModelDescription,
    NetworkState,
    TrainingResult,
    resolve_bias_mode,
)

logger = logging.getLogger(__name__)

MIN_TRAINING_ROWS = 4
MIN_TRAINING_COLUMNS = 2
MIN_HIDDEN_NEURONS = 2


def emit_callbacks(
    callbacks: Iterable[object], hook: str, index: int, metrics: Mapping[str, float]
) -> None:
    """Deliver ``metrics`` to every callback exposing ``hook`` or being callable."""

    for callback in callbacks:
        method = getattr(callback, hook, None)
        if method is not None:
            method(index, metrics)
        elif callable(callback):
            callback(index, metrics)


def summarize_epoch(record: EpochRecord) -> dict[str, float]:
    """Squared-error loss and absolute error sum of one epoch's outputs."""

    if record.samples == 0:
        return {"loss": 0.0, "error_sum": 0.0, "learning_rate": float(record.learning_rate)}
    diff = record.targets - record.outputs
    return {
        "loss": float(np.mean(np.square(diff))),
        "error_sum": float(np.sum(np.abs(diff))),
        "learning_rate": float(record.learning_rate),
    }


class Network:
    """Hidden layers followed by exactly one output layer."""

    def __init__(
        self,
        learning_rate: float = 1.0,
        epoch_count: int = 2000,
        *,
        apply_learning_rate: bool = True,
        squash_targets: bool = False,
        bias_mode: BiasMode | str = BiasMode.ONCE,
        initializer: RandomSource | str | None = None,
        seed: int | None = None,
    ) -> None:
        if int(epoch_count) < 0:
            raise InvalidConfigurationError(f"epoch_count must be >= 0, got {epoch_count}")
        self.learning_rate = float(learning_rate)
        self.epoch_count = int(epoch_count)
        self.apply_learning_rate = bool(apply_learning_rate)
        self.squash_targets = bool(squash_targets)
        self.bias_mode = resolve_bias_mode(bias_mode)
        self.seed = seed
        self.initializer = as_initializer(initializer, seed)
        self._inputs: Array | None = None
        self._targets: Array | None = None
        self._hidden: List[Layer] = []
        self._output: Layer | None = None
        self._state = NetworkState.EMPTY
        self.epochs_trained = 0
        self.samples_trained = 0

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def from_layers(
        cls,
        hidden: Sequence[Layer],
        output: Layer,
        *,
        trained: bool = True,
        **hyperparameters: Any,
    ) -> "Network":
        """Assemble a network from built layers, without training data."""

        network = cls(**hyperparameters)
        hidden = list(hidden)
        if not hidden:
            raise InvalidConfigurationError("A network needs at least one hidden layer")
        for layer in hidden:
            if layer.neuron_count < MIN_HIDDEN_NEURONS:
                raise NotEnoughHiddenNeuronsError(
                    f"Hidden layers need at least {MIN_HIDDEN_NEURONS} neurons, "
                    f"got {layer.neuron_count}"
                )
        chain = hidden + [output]
        for upstream, downstream in zip(chain[:-1], chain[1:]):
            if downstream.synapse_count != upstream.neuron_count:
                raise InvalidConfigurationError(
                    f"{downstream!r} cannot follow a layer of {upstream.neuron_count} neurons"
                )
        network._hidden = hidden
        network._output = output
        network._state = NetworkState.TRAINED if trained else NetworkState.OUTPUT_BOUND
        return network

    @property
    def state(self) -> NetworkState:
        return self._state

    def _transition(self, state: NetworkState) -> None:
        if state is not self._state:
            logger.debug("network state %s -> %s", self._state.value, state.value)
        self._state = state

    def set_training_input(self, samples: Iterable[Any]) -> None:
        """Bind the training inputs, one row per sample."""

        if self._state not in (NetworkState.EMPTY, NetworkState.INPUT_BOUND):
            raise InvalidNetworkStateError(
                "Training input can only be bound before layers are added "
                f"(state={self._state.value})"
            )
        data = coerce_matrix(samples, "inputs")
        rows, cols = data.shape
        if rows < MIN_TRAINING_ROWS:
            raise NotEnoughTrainingDataError(
                f"Training data must contain at least {MIN_TRAINING_ROWS} rows, got {rows}"
            )
        if cols < MIN_TRAINING_COLUMNS:
            raise NotEnoughTrainingDataError(
                f"Training data must contain at least {MIN_TRAINING_COLUMNS} columns, got {cols}"
            )
        self._inputs = data
        self._transition(NetworkState.INPUT_BOUND)

    def add_hidden_layer(
        self, neuron_count: int, activation: ActivationKind | str = ActivationKind.SIGMOID
    ) -> Layer:
        """Append a hidden layer fed by the previous layer or the inputs."""

        if self._state not in (NetworkState.INPUT_BOUND, NetworkState.LAYERS_BUILDING):
            raise InvalidNetworkStateError(
                "Hidden layers can only be added after the input and before the output "
                f"(state={self._state.value})"
            )
        if int(neuron_count) < MIN_HIDDEN_NEURONS:
            raise NotEnoughHiddenNeuronsError(
                f"Hidden layers need at least {MIN_HIDDEN_NEURONS} neurons, got {neuron_count}"
            )
        synapses = self._hidden[-1].neuron_count if self._hidden else self.input_width
        layer = Layer(
            int(neuron_count),
            synapses,
            activation,
            self.initializer,
            self.bias_mode,
            min_neurons=MIN_HIDDEN_NEURONS,
        )
        self._hidden.append(layer)
        self._transition(NetworkState.LAYERS_BUILDING)
        return layer

    def set_training_output(
        self,
        samples: Iterable[Any],
        activation: ActivationKind | str = ActivationKind.SIGMOID,
    ) -> Layer:
        """Bind the training targets and create the output layer sized from them."""

        if self._inputs is None:
            raise InvalidNetworkStateError("Training input must be bound before the output")
        if not self._hidden:
            raise InvalidNetworkStateError(
                "Hidden layer(s) not ready: at least one hidden layer is required"
            )
        if self._state is not NetworkState.LAYERS_BUILDING:
            raise InvalidNetworkStateError(
                f"The output layer is already bound (state={self._state.value})"
            )
        targets = coerce_matrix(samples, "targets")
        self._check_targets(targets, expected_rows=self._inputs.shape[0])
        self._output = Layer(
            int(targets.shape[1]),
            self._hidden[-1].neuron_count,
            activation,
            self.initializer,
            self.bias_mode,
        )
        self._targets = targets
        self._transition(NetworkState.OUTPUT_BOUND)
        return self._output

    def bind_training_data(self, inputs: Iterable[Any], targets: Iterable[Any]) -> None:
        """Bind a new dataset to an already built network of the same shape."""

        self._require_output("bind_training_data")
        data = coerce_matrix(inputs, "inputs")
        rows, cols = data.shape
        if rows < MIN_TRAINING_ROWS:
            raise NotEnoughTrainingDataError(
                f"Training data must contain at least {MIN_TRAINING_ROWS} rows, got {rows}"
            )
        if cols != self.input_width:
            raise InputShapeError(f"Network expects {self.input_width} input columns, got {cols}")
        labels = coerce_matrix(targets, "targets")
        self._check_targets(labels, expected_rows=rows)
        if labels.shape[1] != self.output_width:
            raise InvalidOutputShapeError(
                f"Network has {self.output_width} outputs, targets have {labels.shape[1]} columns"
            )
        self._inputs = data
        self._targets = labels

    @staticmethod
    def _check_targets(targets: Array, *, expected_rows: int) -> None:
        rows = targets.shape[0]
        if rows != expected_rows:
            raise InvalidOutputShapeError(
                "Output data must contain the same number of rows as the input "
                f"training data ({rows} != {expected_rows})"
            )
        if targets.ndim != 2 or targets.shape[1] < 1:
            raise InvalidOutputShapeError("Output data must contain at least 1 column")

    # ------------------------------------------------------------------
    # Introspection

    @property
    def input_width(self) -> int:
        if self._hidden:
            return self._hidden[0].synapse_count
        if self._inputs is not None:
            return int(self._inputs.shape[1])
        return 0

    @property
    def output_width(self) -> int:
        return self._output.neuron_count if self._output is not None else 0

    @property
    def hidden_layers(self) -> List[Layer]:
        return list(self._hidden)

    @property
    def output_layer(self) -> Layer | None:
        return self._output

    @property
    def layers(self) -> List[Layer]:
        layers = list(self._hidden)
        if self._output is not None:
            layers.append(self._output)
        return layers

    @property
    def sample_count(self) -> int:
        return 0 if self._inputs is None else int(self._inputs.shape[0])

    @property
    def training_inputs(self) -> Array | None:
        return None if self._inputs is None else self._inputs.copy()

    @property
    def training_targets(self) -> Array | None:
        return None if self._targets is None else self._targets.copy()

    def describe(self) -> ModelDescription:
        return ModelDescription(
            layer_dims=[self.input_width] + [layer.neuron_count for layer in self.layers],
            activations=[layer.activation.value for layer in self.layers],
            bias_mode=self.bias_mode.value,
        )

    def state_dict(self) -> dict[str, Array]:
        state: dict[str, Array] = {}
        for idx, layer in enumerate(self.layers):
            state[f"W{idx}"] = layer.weights
            state[f"b{idx}"] = layer.biases
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx, layer in enumerate(self.layers):
            for key in (f"W{idx}", f"b{idx}"):
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
            weights = np.asarray(state[f"W{idx}"], dtype=np.float64)
            biases = np.asarray(state[f"b{idx}"], dtype=np.float64).reshape(-1)
            if weights.shape != (layer.neuron_count, layer.synapse_count):
                raise InvalidConfigurationError(
                    f"W{idx} has shape {weights.shape}, expected "
                    f"{(layer.neuron_count, layer.synapse_count)}"
                )
            if biases.size != layer.neuron_count:
                raise InvalidConfigurationError(
                    f"b{idx} has {biases.size} entries, expected {layer.neuron_count}"
                )
            for neuron, row, bias in zip(layer.neurons, weights, biases):
                neuron.weights = row.copy()
                neuron.bias = float(bias)

    def parameter_count(self) -> int:
        return int(sum(layer.neuron_count * (layer.synapse_count + 1) for layer in self.layers))

    # ------------------------------------------------------------------
    # Forward / backward

    def _require_output(self, operation: str) -> None:
        if self._output is None:
            raise InvalidNetworkStateError(
                f"{operation} requires the input, hidden layer(s) and output to be bound "
                f"(state={self._state.value})"
            )

    def _require_data(self, operation: str) -> None:
        self._require_output(operation)
        if self._inputs is None or self._targets is None:
            raise InvalidNetworkStateError(f"{operation} requires bound training data")

    def feed_forward(self, inputs: Sequence[float] | Array) -> Array:
        """Propagate ``inputs`` through every layer and return the output vector.

        Only the per-neuron caches change; weights and biases are untouched.
        """

        self._require_output("feed_forward")
        x = coerce_vector(inputs)
        if x.size != self.input_width:
            raise InputShapeError(f"Network expects {self.input_width} inputs, got {x.size}")
        for layer in self.layers:
            x = layer.forward(x)
        return x.copy()

    def prepare_target(self, target: Sequence[float] | Array) -> Array:
        """Return the target the error is measured against.

        With ``squash_targets`` the raw target goes through :func:`sigmoid`
        first, which changes the scale of the error signal.
        """

        t = coerce_vector(target, "target")
        if self.squash_targets:
            return np.array([sigmoid(v) for v in t], dtype=np.float64)
        return t

    def backpropagate(
        self, target: Sequence[float] | Array, learning_rate: float | None = None
    ) -> Array:
        """Adjust every weight against ``target`` after a forward pass.

        The output layer is fully updated before any hidden layer. A hidden
        neuron's error is its own slope times the downstream errors weighted
        by the downstream weights as they stand after that layer's update.
        Returns the output layer's error signals.
        """

        self._require_output("backpropagate")
        lr = self.learning_rate if learning_rate is None else float(learning_rate)
        t = self.prepare_target(target)
        if t.size != self.output_width:
            raise InputShapeError(f"Network has {self.output_width} outputs, target has {t.size}")

        downstream = self._output
        for j, neuron in enumerate(downstream.neurons):
            error = neuron.derivative() * (t[j] - neuron.last_output)
            neuron.adjust_weights(error, lr, self.apply_learning_rate)

        for layer in reversed(self._hidden):
            for j, neuron in enumerate(layer.neurons):
                signal = sum(d.last_error * d.weights[j] for d in downstream.neurons)
                neuron.adjust_weights(neuron.derivative() * signal, lr, self.apply_learning_rate)
            downstream = layer
        return self._output.errors

    def train_sample(
        self,
        inputs: Sequence[float] | Array,
        target: Sequence[float] | Array,
        learning_rate: float | None = None,
    ) -> Array:
        """One forward and one backward pass; returns the pre-update output."""

        outputs = self.feed_forward(inputs)
        self.backpropagate(target, learning_rate)
        self.samples_trained += 1
        return outputs

    def run_epoch(
        self,
        learning_rate: float | None = None,
        *,
        cancel: Any = None,
        sample_callbacks: Sequence[object] = (),
        epoch: int = 0,
    ) -> EpochRecord:
        """Train once on every bound sample, in stored order."""

        self._require_data("run_epoch")
        lr = self.learning_rate if learning_rate is None else float(learning_rate)
        targets = np.stack([self.prepare_target(row) for row in self._targets])
        outputs = np.zeros_like(targets)
        seen = 0
        cancelled = False
        for index in range(self.sample_count):
            if cancel is not None and cancel.is_set():
                logger.info("training cancelled at epoch %d sample %d", epoch, index)
                cancelled = True
                break
            outputs[index] = self.train_sample(self._inputs[index], self._targets[index], lr)
            seen += 1
            if sample_callbacks:
                loss = float(np.mean(np.square(targets[index] - outputs[index])))
                emit_callbacks(
                    sample_callbacks,
                    "on_step",
                    self.samples_trained,
                    {"epoch": float(epoch), "sample": float(index), "loss": loss},
                )
        if seen:
            self._transition(NetworkState.TRAINED)
        return EpochRecord(
            epoch,
            lr,
            outputs[:seen],
            targets[:seen],
            seen,
            cancelled=cancelled,
            raw_targets=self._targets[:seen].copy(),
        )

    def train(
        self,
        callbacks: Sequence[object] = (),
        sample_callbacks: Sequence[object] = (),
        cancel: Any = None,
    ) -> TrainingResult:
        """Run ``epoch_count`` epochs at the configured learning rate.

        ``cancel`` is any object with ``is_set()`` (e.g. ``threading.Event``);
        it is polled between samples and between epochs.
        """

        self._require_data("train")
        metrics: dict[str, float] = {}
        completed = 0
        samples = 0
        cancelled = False
        for epoch in range(1, self.epoch_count + 1):
            if cancel is not None and cancel.is_set():
                cancelled = True
                break
            record = self.run_epoch(
                cancel=cancel, sample_callbacks=sample_callbacks, epoch=epoch
            )
            samples += record.samples
            if record.cancelled:
                cancelled = True
                break
            completed += 1
            metrics = summarize_epoch(record)
            emit_callbacks(callbacks, "on_epoch", epoch, metrics)
        self.epochs_trained += completed
        return TrainingResult(
            epochs=completed, samples=samples, cancelled=cancelled, metrics=metrics
        )

    def __repr__(self) -> str:
        dims = "-".join(str(d) for d in self.describe().layer_dims)
        return f"Network(dims={dims}, state={self._state.value}, lr={self.learning_rate})"


def create_network(learning_rate: float, epoch_count: int, **options: Any) -> Network:
    """Return an empty :class:`Network` with the given hyperparameters."""

    return Network(learning_rate=learning_rate, epoch_count=epoch_count, **options)


__all__ = [
    "MIN_HIDDEN_NEURONS",
    "MIN_TRAINING_COLUMNS",
    "MIN_TRAINING_ROWS",
    "Network",
    "create_network",
    "emit_callbacks",
    "summarize_epoch",
]
