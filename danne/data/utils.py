"""Utility helpers for training data."""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np

from ..core.errors import NotEnoughTrainingDataError, NumericParseError


def _is_row(value: Any) -> bool:
    return hasattr(value, "__iter__") and not isinstance(value, (str, bytes))


def _to_float(cell: Any, what: str, row: int, col: int) -> float:
    try:
        return float(cell)
    except (TypeError, ValueError) as exc:
        raise NumericParseError(
            f"Cannot parse {what}[{row}][{col}]={cell!r} into a float"
        ) from exc


def coerce_matrix(rows: Iterable[Any], what: str = "inputs") -> np.ndarray:
    """Return ``rows`` as a fresh ``float64`` matrix.

    Rows may hold numbers or numeric strings. A scalar row is treated as a
    single column, so ``[0, 1, 1, 0]`` becomes a ``(4, 1)`` target matrix.
    """

    if isinstance(rows, np.ndarray) and rows.dtype.kind in "biuf":
        arr = np.array(rows, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise NotEnoughTrainingDataError(
                f"{what} must be two-dimensional, got shape {arr.shape}"
            )
        return arr

    parsed: list[list[float]] = []
    width: int | None = None
    for r, row in enumerate(rows):
        cells = list(row) if _is_row(row) else [row]
        values = [_to_float(cell, what, r, c) for c, cell in enumerate(cells)]
        if width is None:
            width = len(values)
        elif len(values) != width:
            raise NotEnoughTrainingDataError(
                f"{what} row {r} has {len(values)} columns, expected {width}"
            )
        parsed.append(values)
    if not parsed:
        return np.zeros((0, 0), dtype=np.float64)
    return np.array(parsed, dtype=np.float64)


def coerce_vector(values: Iterable[Any], what: str = "input") -> np.ndarray:
    """Return a single sample as a ``float64`` vector."""

    if isinstance(values, np.ndarray) and values.dtype.kind in "biuf":
        return np.array(values, dtype=np.float64).reshape(-1)
    cells = list(values) if _is_row(values) else [values]
    return np.array([_to_float(c, what, 0, i) for i, c in enumerate(cells)], dtype=np.float64)


__all__ = ["coerce_matrix", "coerce_vector"]
