"""Aggregate test lifecycle events into a JSON archival report and a flat
stream of label-tagged records."""

__version__ = "0.1.0"

# Core components
from label_reporter.context import ReporterOptions, RunContext
from label_reporter.records.base import RunStats, Status, TestOutcome
from label_reporter.records.labels import LabelStore, normalize
from label_reporter.records.sanitize import sanitize, serialize_acyclic
from label_reporter.runner.aggregate import Bundle, RunAggregator

# Outputs
from label_reporter.report.emit import BundleEmitter, archival_document, flat_records

__all__ = [
    # Version
    "__version__",
    # Core
    "RunContext",
    "ReporterOptions",
    "RunStats",
    "Status",
    "TestOutcome",
    "LabelStore",
    "normalize",
    "sanitize",
    "serialize_acyclic",
    "Bundle",
    "RunAggregator",
    # Outputs
    "BundleEmitter",
    "archival_document",
    "flat_records",
]
