"""Training data: a registry of in-memory datasets and value coercion."""

from . import truth_tables  # noqa: F401  (registers the truth-table datasets)
from .registry import DataSpec, DatasetSpec, available_datasets, get_dataset, register_dataset
from .utils import coerce_matrix, coerce_vector

__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "coerce_matrix",
    "coerce_vector",
    "get_dataset",
    "register_dataset",
]
