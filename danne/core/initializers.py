"""Pluggable random sources for weight and bias initialisation."""

from __future__ import annotations

import logging
import secrets
import threading
from typing import Callable, Dict, Protocol

import numpy as np

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

MIN_OFFSET = -2
MAX_OFFSET = 2


class RandomSource(Protocol):
    """Capability required by :class:`~danne.core.neuron.Neuron`.

    Only ``next_float`` is mandatory. A source without ``next_int_range``
    draws with an integer offset of zero; see :func:`as_initializer`.
    """

    def next_float(self) -> float:
        """Return a float in ``[0, 1)``."""

    def next_int_range(self, lo: int, hi: int) -> int:
        """Return an integer in ``[lo, hi)``."""


class Initializer:
    """Base strategy: a fractional draw plus a small integer offset.

    Subclasses only provide the two primitive draws. Each instance holds a
    lock so a single initializer can be shared between networks built on
    different threads.
    """

    name = "base"

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def next_float(self) -> float:
        raise NotImplementedError

    def next_int_range(self, lo: int, hi: int) -> int:
        raise NotImplementedError

    def draw(self) -> float:
        with self._lock:
            base = self.next_float()
            return base + self.next_int_range(MIN_OFFSET, MAX_OFFSET)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _GeneratorInitializer(Initializer):
    """Initializer backed by a :class:`numpy.random.Generator`."""

    def __init__(self, seed: int | None = None) -> None:
        super().__init__()
        self.seed = seed
        self._rng = self._make_generator(seed)

    @staticmethod
    def _make_generator(seed: int | None) -> np.random.Generator:
        raise NotImplementedError

    def next_float(self) -> float:
        return float(self._rng.random())

    def next_int_range(self, lo: int, hi: int) -> int:
        if hi <= lo:
            raise InvalidConfigurationError(f"Empty integer range [{lo}, {hi})")
        return int(self._rng.integers(lo, hi))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(seed={self.seed!r})"


class SeededRandomInitializer(_GeneratorInitializer):
    """General-purpose seeded PRNG (numpy's default PCG64)."""

    name = "random"

    @staticmethod
    def _make_generator(seed: int | None) -> np.random.Generator:
        return np.random.default_rng(seed)


class MersenneTwisterInitializer(_GeneratorInitializer):
    """Long-period MT19937 generator, the favoured default."""

    name = "mersenne"

    @staticmethod
    def _make_generator(seed: int | None) -> np.random.Generator:
        return np.random.Generator(np.random.MT19937(seed))


class CryptoInitializer(Initializer):
    """Draws from the operating system CSPRNG. Not reproducible."""

    name = "crypto"

    def next_float(self) -> float:
        # 53 random bits map exactly onto the float64 mantissa
        raw = int.from_bytes(secrets.token_bytes(7), "big") >> 3
        return raw / float(1 << 53)

    def next_int_range(self, lo: int, hi: int) -> int:
        if hi <= lo:
            raise InvalidConfigurationError(f"Empty integer range [{lo}, {hi})")
        return lo + secrets.randbelow(hi - lo)


_FACTORIES: Dict[str, Callable[[int | None], Initializer]] = {
    "random": SeededRandomInitializer,
    "pcg64": SeededRandomInitializer,
    "crypto": lambda seed: CryptoInitializer(),
    "cryptographic": lambda seed: CryptoInitializer(),
    "mersenne": MersenneTwisterInitializer,
    "mersenne_twister": MersenneTwisterInitializer,
    "mt19937": MersenneTwisterInitializer,
}

DEFAULT_INITIALIZER = "mersenne"


def available_initializers() -> list[str]:
    return sorted(_FACTORIES)


def make_initializer(
    name: str | Initializer | None = None, seed: int | None = None
) -> Initializer:
    """Return an initializer instance for ``name``.

    An :class:`Initializer` passed in is returned unchanged, so callers can
    share one generator between networks on purpose.
    """

    if isinstance(name, Initializer):
        if seed is not None:
            logger.warning(
                "Ignoring seed %r: initializer %r is already constructed", seed, name
            )
        return name
    key = (name or DEFAULT_INITIALIZER).strip().lower().replace("-", "_")
    try:
        factory = _FACTORIES[key]
    except KeyError as exc:
        available = ", ".join(available_initializers())
        raise InvalidConfigurationError(
            f"Unknown initializer {name!r}. Available initializers: {available}"
        ) from exc
    return factory(seed)


class StrategyInitializer(Initializer):
    """Wrap a user supplied random source in the standard draw."""

    name = "custom"

    def __init__(self, source: RandomSource) -> None:
        super().__init__()
        self.source = source

    def next_float(self) -> float:
        return float(self.source.next_float())

    def next_int_range(self, lo: int, hi: int) -> int:
        draw_int = getattr(self.source, "next_int_range", None)
        if draw_int is None:
            return 0
        return int(draw_int(lo, hi))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.source!r})"


def as_initializer(
    source: RandomSource | Initializer | str | None = None, seed: int | None = None
) -> Initializer:
    """Normalise anything accepted as an ``initializer`` argument.

    Names and ``None`` go through :func:`make_initializer`. Objects that
    only expose ``next_float`` (and optionally ``next_int_range``) are
    wrapped in :class:`StrategyInitializer`.
    """

    if source is None or isinstance(source, (str, Initializer)):
        return make_initializer(source, seed)
    if callable(getattr(source, "next_float", None)):
        if seed is not None:
            logger.warning("Ignoring seed %r for custom random source %r", seed, source)
        return StrategyInitializer(source)
    raise InvalidConfigurationError(
        f"Initializer must be a name or expose next_float(), got {type(source).__name__}"
    )


__all__ = [
    "CryptoInitializer",
    "DEFAULT_INITIALIZER",
    "Initializer",
    "MAX_OFFSET",
    "MIN_OFFSET",
    "MersenneTwisterInitializer",
    "RandomSource",
    "SeededRandomInitializer",
    "StrategyInitializer",
    "as_initializer",
    "available_initializers",
    "make_initializer",
]
