"""Boolean truth tables used as in-memory training sets."""

from __future__ import annotations

import itertools
from typing import Callable, Sequence

import numpy as np

from .registry import DataSpec, DatasetSpec, register_dataset

Gate = Callable[[Sequence[int]], Sequence[int]]


def truth_table(arity: int) -> np.ndarray:
    """All ``2**arity`` binary input rows, ``(0, 0)`` first.

    The first column varies fastest, so for two inputs the row order is
    ``(0,0), (1,0), (0,1), (1,1)``.
    """

    rows = [tuple(reversed(bits)) for bits in itertools.product((0, 1), repeat=arity)]
    return np.array(rows, dtype=np.float64)


def _build(
    name: str, gate: Gate, arity: int, outputs: Sequence[str], **provenance: object
) -> DatasetSpec:
    if arity < 2:
        raise ValueError(f"{name} needs at least 2 inputs, got {arity}")
    inputs = truth_table(arity)
    targets = np.array([gate(tuple(int(v) for v in row)) for row in inputs], dtype=np.float64)
    data_spec = DataSpec(
        d_in=arity,
        d_out=len(outputs),
        task_type="binary",
        extra={"columns": [f"x{i}" for i in range(arity)], "outputs": list(outputs)},
    )
    return DatasetSpec(
        name=name,
        inputs=inputs,
        targets=targets,
        data_spec=data_spec,
        provenance={"type": "truth_table", "gate": name, "arity": arity, **provenance},
    )


@register_dataset("xor")
def make_xor(arity: int = 2, **_: object) -> DatasetSpec:
    """n-input parity; the classic two-input XOR by default."""

    return _build("xor", lambda bits: (sum(bits) % 2,), int(arity), ["parity"])


@register_dataset("xnor")
def make_xnor(arity: int = 2, **_: object) -> DatasetSpec:
    return _build("xnor", lambda bits: (1 - sum(bits) % 2,), int(arity), ["even"])


@register_dataset("and")
def make_and(arity: int = 2, **_: object) -> DatasetSpec:
    return _build("and", lambda bits: (int(all(bits)),), int(arity), ["and"])


@register_dataset("or")
def make_or(arity: int = 2, **_: object) -> DatasetSpec:
    return _build("or", lambda bits: (int(any(bits)),), int(arity), ["or"])


@register_dataset("nand")
def make_nand(arity: int = 2, **_: object) -> DatasetSpec:
    return _build("nand", lambda bits: (1 - int(all(bits)),), int(arity), ["nand"])


@register_dataset("nor")
def make_nor(arity: int = 2, **_: object) -> DatasetSpec:
    return _build("nor", lambda bits: (1 - int(any(bits)),), int(arity), ["nor"])


@register_dataset("half_adder")
def make_half_adder(**_: object) -> DatasetSpec:
    """Two inputs, two outputs: ``(sum, carry)``."""

    return _build(
        "half_adder", lambda bits: (bits[0] ^ bits[1], bits[0] & bits[1]), 2, ["sum", "carry"]
    )


__all__ = [
    "make_and",
    "make_half_adder",
    "make_nand",
    "make_nor",
    "make_or",
    "make_xnor",
    "make_xor",
    "truth_table",
]
