"""Outcome records: data model, label normalization and sanitization."""

from label_reporter.records.base import RunStats, Status, TestOutcome
from label_reporter.records.labels import LabelStore, normalize, strip_test_artifacts
from label_reporter.records.sanitize import error_to_dict, sanitize, serialize_acyclic

__all__ = [
    "RunStats",
    "Status",
    "TestOutcome",
    "LabelStore",
    "normalize",
    "strip_test_artifacts",
    "error_to_dict",
    "sanitize",
    "serialize_acyclic",
]
