"""Execution context and options for a reporting run."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from label_reporter.config import DEFAULT_APP, DEFAULT_OUTPUT
from label_reporter.exceptions import ConfigurationError


@dataclass(frozen=True)
class RunContext:
    """Reporting run context with run_id, app tag, and extra data."""
    run_id: str
    app: str = DEFAULT_APP
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ReporterOptions:
    """Where and how a finalized run is written.

    ``output`` is the archival document path; when unset or empty the
    default filename is used. ``records_output`` additionally writes the
    flat record stream as a JSON array, ``console`` writes it line by line
    to the console stream.
    """
    output: Optional[str] = None
    records_output: Optional[str] = None
    console: bool = True
    hierarchy: bool = False

    def __post_init__(self):
        if self.output is not None and not isinstance(self.output, str):
            raise ConfigurationError(f"output must be a path string, got {self.output!r}")

    @property
    def output_path(self) -> str:
        return self.output or DEFAULT_OUTPUT
