import threading

import numpy as np
import pytest

from danne.core.activations import sigmoid
from danne.core.errors import (
    InputShapeError,
    InvalidConfigurationError,
    InvalidNetworkStateError,
    InvalidOutputShapeError,
    NotEnoughHiddenNeuronsError,
    NotEnoughTrainingDataError,
    NumericParseError,
)
from danne.core.layer import Layer
from danne.core.network import Network, create_network
from danne.core.neuron import Neuron
from danne.core.types import BiasMode, NetworkState

XOR_IN = [[0, 0], [1, 0], [0, 1], [1, 1]]
XOR_OUT = [[0], [1], [1], [0]]


def _xor_network(epochs=10, **options):
    options.setdefault("seed", 0)
    network = create_network(0.1, epochs, **options)
    network.set_training_input(XOR_IN)
    network.add_hidden_layer(4)
    network.set_training_output(XOR_OUT)
    return network


def _fixed_network(bias_mode=BiasMode.ONCE, **hyper):
    hidden = Layer.from_neurons(
        [
            Neuron.from_parameters([0.1, 0.2], 0.0, bias_mode=bias_mode),
            Neuron.from_parameters([-0.3, 0.4], 0.1, bias_mode=bias_mode),
        ]
    )
    output = Layer.from_neurons([Neuron.from_parameters([0.5, -0.6], 0.2, bias_mode=bias_mode)])
    return Network.from_layers([hidden], output, trained=False, bias_mode=bias_mode, **hyper)


class _Capture:
    def __init__(self) -> None:
        self.history = []

    def on_epoch(self, epoch, metrics):
        self.history.append((epoch, dict(metrics)))


def test_state_machine_walkthrough():
    network = create_network(0.1, 2, seed=0)
    assert network.state is NetworkState.EMPTY
    network.set_training_input(XOR_IN)
    assert network.state is NetworkState.INPUT_BOUND
    layer = network.add_hidden_layer(3)
    assert layer.synapse_count == 2
    network.add_hidden_layer(2, "tanh")
    assert network.state is NetworkState.LAYERS_BUILDING
    assert network.hidden_layers[1].synapse_count == 3
    output = network.set_training_output(XOR_OUT)
    assert network.state is NetworkState.OUTPUT_BOUND
    assert output.synapse_count == 2 and output.neuron_count == 1
    network.train()
    assert network.state is NetworkState.TRAINED
    assert network.describe().layer_dims == [2, 3, 2, 1]


def test_default_hyperparameters():
    network = Network()
    assert network.learning_rate == 1.0
    assert network.epoch_count == 2000
    assert network.apply_learning_rate
    assert not network.squash_targets
    with pytest.raises(InvalidConfigurationError):
        Network(epoch_count=-1)
    with pytest.raises(InvalidConfigurationError, match="Unknown bias mode"):
        Network(bias_mode="twice")
    assert Network(bias_mode="per_synapse").bias_mode is BiasMode.PER_SYNAPSE


def test_training_input_validation():
    network = create_network(0.1, 1)
    with pytest.raises(NotEnoughTrainingDataError):
        network.set_training_input([[0, 0], [1, 1], [0, 1]])
    with pytest.raises(NotEnoughTrainingDataError):
        network.set_training_input([[0], [1], [0], [1]])
    with pytest.raises(NotEnoughTrainingDataError):
        network.set_training_input([[0, 0], [1, 1], [0], [1, 0]])
    with pytest.raises(NumericParseError, match=r"inputs\[2\]\[1\]"):
        network.set_training_input([[0, 0], [1, 1], [0, "abc"], [1, 0]])
    network.set_training_input([["0", "0"], ["1", "0"], ["0", "1"], ["1", "1"]])
    assert network.training_inputs.dtype == np.float64
    assert network.state is NetworkState.INPUT_BOUND


def test_input_can_be_rebound_only_before_layers():
    network = create_network(0.1, 1, seed=0)
    network.set_training_input(XOR_IN)
    network.set_training_input(XOR_IN)
    network.add_hidden_layer(2)
    with pytest.raises(InvalidNetworkStateError):
        network.set_training_input(XOR_IN)


def test_hidden_layer_validation():
    network = create_network(0.1, 1)
    with pytest.raises(InvalidNetworkStateError):
        network.add_hidden_layer(4)
    network.set_training_input(XOR_IN)
    with pytest.raises(NotEnoughHiddenNeuronsError):
        network.add_hidden_layer(1)
    assert network.state is NetworkState.INPUT_BOUND


def test_output_validation():
    network = create_network(0.1, 1, seed=0)
    with pytest.raises(InvalidNetworkStateError):
        network.set_training_output(XOR_OUT)
    network.set_training_input(XOR_IN)
    with pytest.raises(InvalidNetworkStateError):
        network.set_training_output(XOR_OUT)
    network.add_hidden_layer(2)
    with pytest.raises(InvalidOutputShapeError):
        network.set_training_output([[0], [1], [1]])
    with pytest.raises(NotEnoughTrainingDataError):
        network.set_training_output([[], [], [], []])
    network.set_training_output(XOR_OUT)
    with pytest.raises(InvalidNetworkStateError):
        network.set_training_output(XOR_OUT)
    with pytest.raises(InvalidNetworkStateError):
        network.add_hidden_layer(2)


def test_operations_require_output_layer():
    network = create_network(0.1, 1, seed=0)
    network.set_training_input(XOR_IN)
    network.add_hidden_layer(2)
    with pytest.raises(InvalidNetworkStateError):
        network.feed_forward([0, 1])
    with pytest.raises(InvalidNetworkStateError):
        network.train()


def test_feed_forward_is_idempotent_and_read_only():
    network = _xor_network()
    before = network.state_dict()
    first = network.feed_forward([1, 0])
    second = network.feed_forward([1, 0])
    assert np.array_equal(first, second)
    after = network.state_dict()
    for key in before:
        assert np.array_equal(before[key], after[key])
    with pytest.raises(InputShapeError):
        network.feed_forward([1, 0, 1])


def test_training_never_mutates_caller_data():
    inputs = np.array(XOR_IN, dtype=float)
    targets = np.array(XOR_OUT, dtype=float)
    network = create_network(0.5, 3, seed=1, squash_targets=True)
    network.set_training_input(inputs)
    network.add_hidden_layer(2)
    network.set_training_output(targets)
    network.train()
    assert np.array_equal(inputs, np.array(XOR_IN, dtype=float))
    assert np.array_equal(targets, np.array(XOR_OUT, dtype=float))


def test_backpropagate_matches_hand_computation():
    network = _fixed_network(learning_rate=0.5)
    x = np.array([1.0, 0.0])
    W_h = np.array([[0.1, 0.2], [-0.3, 0.4]])
    b_h = np.array([0.0, 0.1])
    w_o = np.array([0.5, -0.6])
    b_o = 0.2
    lr = 0.5
    target = 1.0

    h = np.array([sigmoid(v) for v in W_h @ x + b_h])
    o = sigmoid(w_o @ h + b_o)
    e_o = o * (1 - o) * (target - o)
    w_o_new = w_o + lr * e_o * h
    e_h = h * (1 - h) * (e_o * w_o_new)
    W_h_new = W_h + lr * np.outer(e_h, x)

    out = network.feed_forward(x)
    assert out[0] == pytest.approx(o)
    errors = network.backpropagate([target])
    assert errors[0] == pytest.approx(e_o)
    assert np.allclose(network.output_layer.weights[0], w_o_new)
    assert np.allclose(network.hidden_layers[0].weights, W_h_new)
    assert np.allclose(network.hidden_layers[0].biases, b_h)


def test_backpropagate_through_two_hidden_layers():
    W1 = np.array([[0.15, -0.25], [0.35, 0.05]])
    b1 = np.array([0.1, -0.2])
    W2 = np.array([[0.4, -0.1], [-0.3, 0.2]])
    b2 = np.array([0.05, 0.0])
    w_o = np.array([0.6, -0.45])
    b_o = -0.1
    first = Layer.from_neurons([Neuron.from_parameters(w, b) for w, b in zip(W1, b1)])
    second = Layer.from_neurons([Neuron.from_parameters(w, b) for w, b in zip(W2, b2)])
    output = Layer.from_neurons([Neuron.from_parameters(w_o, b_o)])
    network = Network.from_layers([first, second], output, learning_rate=0.7)
    lr = 0.7
    x = np.array([1.0, 1.0])
    target = 0.0

    h1 = np.array([sigmoid(v) for v in W1 @ x + b1])
    h2 = np.array([sigmoid(v) for v in W2 @ h1 + b2])
    o = sigmoid(w_o @ h2 + b_o)
    e_o = o * (1 - o) * (target - o)
    w_o_new = w_o + lr * e_o * h2
    e2 = h2 * (1 - h2) * (e_o * w_o_new)
    W2_new = W2 + lr * np.outer(e2, h1)
    e1 = h1 * (1 - h1) * (W2_new.T @ e2)
    W1_new = W1 + lr * np.outer(e1, x)

    assert network.feed_forward(x)[0] == pytest.approx(o)
    network.backpropagate([target])
    assert np.allclose(network.output_layer.weights[0], w_o_new)
    assert np.allclose(network.hidden_layers[1].weights, W2_new)
    assert np.allclose(network.hidden_layers[1].errors, e2)
    assert np.allclose(network.hidden_layers[0].weights, W1_new)
    assert np.allclose(network.hidden_layers[0].errors, e1)
    assert np.allclose(network.hidden_layers[0].biases, b1)


def test_per_synapse_bias_in_forward_pass():
    network = _fixed_network(BiasMode.PER_SYNAPSE)
    x = np.array([1.0, 1.0])
    h = np.array([sigmoid(0.1 + 0.2), sigmoid(-0.3 + 0.4 + 2 * 0.1)])
    expected = sigmoid(0.5 * h[0] - 0.6 * h[1] + 2 * 0.2)
    assert network.feed_forward(x)[0] == pytest.approx(expected)


def test_squashed_targets_change_error_signal():
    plain = _fixed_network()
    squashed = _fixed_network(squash_targets=True)
    assert squashed.prepare_target([1.0])[0] == pytest.approx(sigmoid(1.0))
    assert plain.prepare_target([1.0])[0] == 1.0
    x = [0.0, 1.0]
    plain.feed_forward(x)
    squashed.feed_forward(x)
    e_plain = plain.backpropagate([1.0])[0]
    e_squashed = squashed.backpropagate([1.0])[0]
    assert e_plain != pytest.approx(e_squashed)
    assert e_squashed < e_plain


def test_train_runs_epochs_times_samples_and_reports():
    network = _xor_network(epochs=5)
    epochs = _Capture()
    steps = []
    result = network.train(callbacks=[epochs], sample_callbacks=[lambda i, m: steps.append(i)])
    assert result.epochs == 5
    assert result.samples == 20
    assert not result.cancelled
    assert [epoch for epoch, _ in epochs.history] == [1, 2, 3, 4, 5]
    assert {"loss", "error_sum", "learning_rate"} <= set(epochs.history[-1][1])
    assert steps == list(range(1, 21))
    assert network.epochs_trained == 5
    network.train()
    assert network.epochs_trained == 10
    assert network.samples_trained == 40


def test_cancellation_stops_between_samples():
    network = _xor_network(epochs=50)
    cancel = threading.Event()

    def stop_after_three(step, metrics):
        if step == 3:
            cancel.set()

    result = network.train(sample_callbacks=[stop_after_three], cancel=cancel)
    assert result.cancelled
    assert result.samples == 3
    assert result.epochs == 0
    assert network.state is NetworkState.TRAINED


def test_cancel_before_start_trains_nothing():
    network = _xor_network(epochs=5)
    before = network.state_dict()
    cancel = threading.Event()
    cancel.set()
    result = network.train(cancel=cancel)
    assert result.cancelled and result.samples == 0
    assert network.state is NetworkState.OUTPUT_BOUND
    assert np.array_equal(before["W0"], network.state_dict()["W0"])


def test_seeded_networks_are_reproducible():
    a = _xor_network(epochs=20, seed=9)
    b = _xor_network(epochs=20, seed=9)
    a.train()
    b.train()
    assert np.array_equal(a.feed_forward([1, 1]), b.feed_forward([1, 1]))


def test_state_dict_roundtrip_and_parameter_count():
    source = _xor_network(seed=1)
    target = _xor_network(seed=2)
    assert source.parameter_count() == 4 * 3 + 1 * 5
    target.load_state_dict(source.state_dict())
    assert np.array_equal(source.feed_forward([0, 1]), target.feed_forward([0, 1]))
    with pytest.raises(KeyError):
        target.load_state_dict({"W0": source.state_dict()["W0"]})


def test_bind_training_data_on_built_network():
    network = _fixed_network()
    network.bind_training_data(XOR_IN, XOR_OUT)
    assert network.sample_count == 4
    network.train()
    with pytest.raises(InputShapeError):
        network.bind_training_data([[0, 0, 0]] * 4, XOR_OUT)
    with pytest.raises(InvalidOutputShapeError):
        network.bind_training_data(XOR_IN, [[0, 1]] * 4)


def test_from_layers_checks_chain():
    hidden = Layer(2, 2)
    with pytest.raises(InvalidConfigurationError):
        Network.from_layers([hidden], Layer(1, 3))
    with pytest.raises(NotEnoughHiddenNeuronsError):
        Network.from_layers([Layer(1, 2)], Layer(1, 1))
