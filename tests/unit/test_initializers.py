import threading

import numpy as np
import pytest

from danne.core.errors import InvalidConfigurationError
from danne.core.initializers import (
    MAX_OFFSET,
    MIN_OFFSET,
    CryptoInitializer,
    MersenneTwisterInitializer,
    SeededRandomInitializer,
    StrategyInitializer,
    as_initializer,
    available_initializers,
    make_initializer,
)
from danne.core.network import create_network
from danne.core.neuron import Neuron


@pytest.mark.parametrize("name", ["random", "crypto", "mersenne"])
def test_draws_fall_in_offset_range(name):
    init = make_initializer(name, seed=3)
    draws = np.array([init.draw() for _ in range(500)])
    assert np.all(draws >= MIN_OFFSET)
    assert np.all(draws < MAX_OFFSET)
    # the integer offset covers every value in [-2, 2)
    assert set(np.floor(draws).astype(int)) == set(range(MIN_OFFSET, MAX_OFFSET))


def test_primitive_draws():
    init = CryptoInitializer()
    for _ in range(100):
        value = init.next_float()
        assert 0.0 <= value < 1.0
        assert -3 <= init.next_int_range(-3, 0) < 0
    with pytest.raises(InvalidConfigurationError):
        init.next_int_range(2, 2)


def test_seeded_initializers_are_reproducible():
    for cls in (SeededRandomInitializer, MersenneTwisterInitializer):
        first = cls(seed=42)
        second = cls(seed=42)
        assert [first.draw() for _ in range(10)] == [second.draw() for _ in range(10)]


def test_factory_names_and_aliases():
    assert isinstance(make_initializer(), MersenneTwisterInitializer)
    assert isinstance(make_initializer("MT19937"), MersenneTwisterInitializer)
    assert isinstance(make_initializer("pcg64"), SeededRandomInitializer)
    assert isinstance(make_initializer("cryptographic"), CryptoInitializer)
    shared = MersenneTwisterInitializer(seed=1)
    assert make_initializer(shared) is shared
    assert {"random", "crypto", "mersenne"} <= set(available_initializers())


def test_unknown_initializer_is_rejected():
    with pytest.raises(InvalidConfigurationError, match="Unknown initializer"):
        make_initializer("sobol")


def test_shared_initializer_survives_concurrent_draws():
    init = MersenneTwisterInitializer(seed=0)
    results: list[float] = []
    lock = threading.Lock()

    def worker():
        local = [init.draw() for _ in range(200)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    reference = MersenneTwisterInitializer(seed=0)
    expected = sorted(reference.draw() for _ in range(800))
    assert sorted(results) == expected


class _CountingSource:
    """Deterministic source exposing both primitive draws."""

    def __init__(self) -> None:
        self.calls = 0

    def next_float(self) -> float:
        self.calls += 1
        return 0.25

    def next_int_range(self, lo: int, hi: int) -> int:
        assert (lo, hi) == (MIN_OFFSET, MAX_OFFSET)
        return -1


class _FloatOnlySource:
    def next_float(self) -> float:
        return 0.75


def test_custom_source_uses_both_primitives():
    source = _CountingSource()
    neuron = Neuron(3, initializer=source)
    assert np.allclose(neuron.weights, [-0.75, -0.75, -0.75])
    assert neuron.bias == pytest.approx(-0.75)
    assert source.calls == 4


def test_custom_source_without_int_range_has_zero_offset():
    init = as_initializer(_FloatOnlySource())
    assert isinstance(init, StrategyInitializer)
    assert init.draw() == pytest.approx(0.75)
    neuron = Neuron(2, initializer=_FloatOnlySource())
    assert np.allclose(neuron.weights, [0.75, 0.75])


def test_network_builds_layers_from_custom_source():
    network = create_network(0.1, 1, initializer=_CountingSource())
    network.set_training_input([[0, 0], [1, 0], [0, 1], [1, 1]])
    layer = network.add_hidden_layer(2)
    network.set_training_output([[0], [1], [1], [0]])
    assert np.allclose(layer.weights, -0.75)
    assert np.allclose(network.output_layer.weights, -0.75)


def test_as_initializer_passes_names_and_instances_through():
    shared = SeededRandomInitializer(seed=5)
    assert as_initializer(shared) is shared
    assert isinstance(as_initializer("crypto"), CryptoInitializer)
    assert isinstance(as_initializer(None), MersenneTwisterInitializer)
    with pytest.raises(InvalidConfigurationError, match="next_float"):
        as_initializer(42)


def test_seed_ignored_for_constructed_initializer_is_logged(caplog):
    shared = MersenneTwisterInitializer(seed=1)
    with caplog.at_level("WARNING", logger="danne.core.initializers"):
        assert make_initializer(shared, seed=9) is shared
    assert "Ignoring seed 9" in caplog.text
