"""Custom exception hierarchy for the label reporter."""


class LabelReportError(Exception):
    """Base exception for all label reporter errors."""

    pass


class AggregatorStateError(LabelReportError):
    """Raised when a lifecycle event arrives after the run was finalized."""

    pass


class FinalizationError(LabelReportError):
    """Raised when building the bundle fails at run end."""

    pass


class ReportWriteError(LabelReportError):
    """Raised when a report sink cannot be written."""

    pass


class ConfigurationError(LabelReportError):
    """Raised when reporter options are invalid."""

    pass
