"""Base data model: TestOutcome, RunStats, and Status enum."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Status(Enum):
    """Final state of one test: PASSED, FAILED, PENDING."""

    PASSED = "passed"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(eq=False)
class TestOutcome:
    """One test's result as delivered by the execution engine.

    Compared by identity: the aggregator buffers references, and the same
    outcome object is expected in the ``tests`` buffer and in exactly one
    of the passed/failed/pending buffers.
    """

    __test__ = False  # not a pytest test class

    id: str
    title: str
    file: Optional[str] = None
    duration: Optional[float] = None
    suite_path: Tuple[str, ...] = ()
    retries: int = 0
    err: Any = None

    def full_title(self) -> str:
        return " ".join(self.suite_path + (self.title,))

    def current_retry(self) -> int:
        return self.retries


@dataclass
class RunStats:
    suites: int = 0
    tests: int = 0
    passes: int = 0
    pending: int = 0
    failures: int = 0
    # Timing is supplied by the host, never measured here
    start: Optional[str] = None
    end: Optional[str] = None
    duration: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "suites": self.suites,
            "tests": self.tests,
            "passes": self.passes,
            "pending": self.pending,
            "failures": self.failures,
        }
        for key in ("start", "end", "duration"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        return d
