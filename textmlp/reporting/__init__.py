"""Reporting utilities for textmlp."""

from .metrics import CsvSink, JsonlSink, read_jsonl
from .plots import PlotAdapter

__all__ = ["CsvSink", "JsonlSink", "PlotAdapter", "read_jsonl"]
