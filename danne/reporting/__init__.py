"""Reporting utilities for danne runs."""

from .artifacts import write_manifest
from .metrics import CsvSink, JsonlSink, LoggingSink
from .plots import PlotAdapter
from .summary import compute_auc, write_summary

__all__ = [
    "CsvSink",
    "JsonlSink",
    "LoggingSink",
    "PlotAdapter",
    "compute_auc",
    "write_manifest",
    "write_summary",
]
