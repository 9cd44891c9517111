"""Buffer lifecycle events of one run and build its bundle at run end."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from label_reporter.context import RunContext
from label_reporter.exceptions import AggregatorStateError, FinalizationError
from label_reporter.logging_config import get_logger
from label_reporter.records.base import RunStats
from label_reporter.records.labels import LabelSet, LabelStore, suite_labels
from label_reporter.records.sanitize import sanitize

logger = get_logger("runner")


class AggregatorState(Enum):
    COLLECTING = "collecting"
    FINALIZED = "finalized"


@dataclass
class Bundle:
    """Complete output of one run."""

    context: RunContext
    stats: RunStats
    suite_labels: LabelSet = field(default_factory=dict)
    tests: List[Dict[str, Any]] = field(default_factory=list)
    pending: List[Dict[str, Any]] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)
    passes: List[Dict[str, Any]] = field(default_factory=list)
    # Buffered outcome references by buffer name, for the suite-tree document
    raw: Dict[str, List[Any]] = field(default_factory=dict, repr=False)
    # Errors passed to on_fail, keyed by id() of the outcome
    errors: Dict[int, Any] = field(default_factory=dict, repr=False)


class RunAggregator:
    """Collects outcomes of a single run.

    One instance serves exactly one run: once ``on_run_end`` has been
    called every further event raises ``AggregatorStateError``.
    """

    def __init__(self, context: RunContext, labels: Optional[LabelStore] = None):
        self.context = context
        self.labels = labels if labels is not None else LabelStore()
        self.state = AggregatorState.COLLECTING
        self.stats = RunStats()
        self.tests: List[Any] = []
        self.pending: List[Any] = []
        self.failures: List[Any] = []
        self.passes: List[Any] = []
        # Outcomes belong to the engine and are never written to
        self.errors: Dict[int, Any] = {}

    def _check_collecting(self, event: str) -> None:
        if self.state is not AggregatorState.COLLECTING:
            raise AggregatorStateError(
                f"Run {self.context.run_id} is already finalized, got '{event}'"
            )

    def on_suite_start(self, title: str) -> None:
        self._check_collecting("suite start")
        self.stats.suites += 1
        logger.debug(f"Suite started: {title}", extra={"suite": title})

    def on_test_end(self, outcome) -> None:
        self._check_collecting("test end")
        self.tests.append(outcome)
        self.stats.tests += 1

    def on_pass(self, outcome) -> None:
        self._check_collecting("pass")
        self.passes.append(outcome)
        self.stats.passes += 1

    def on_fail(self, outcome, err: Any = None) -> None:
        self._check_collecting("fail")
        if err is not None:
            self.errors[id(outcome)] = err
        self.failures.append(outcome)
        self.stats.failures += 1

    def on_pending(self, outcome) -> None:
        self._check_collecting("pending")
        self.pending.append(outcome)
        self.stats.pending += 1

    def on_run_end(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Bundle:
        """Finalize the run and sanitize every buffered outcome."""
        self._check_collecting("run end")
        self.state = AggregatorState.FINALIZED

        self.stats.start, self.stats.end, self.stats.duration = start, end, duration

        # Without a single finished or failed test there is nothing that
        # carries the run context, hence no label source.
        if self.tests or self.failures:
            run_labels = self.labels.run
        else:
            run_labels = {}
        labels = suite_labels(run_labels, (outcome.id for outcome in self.tests))

        try:
            bundle = Bundle(
                context=self.context,
                stats=self.stats,
                suite_labels=labels,
                tests=self._sanitize_all(self.tests, labels),
                pending=self._sanitize_all(self.pending, labels),
                failures=self._sanitize_all(self.failures, labels),
                passes=self._sanitize_all(self.passes, labels),
                raw={
                    "tests": list(self.tests),
                    "pending": list(self.pending),
                    "failures": list(self.failures),
                    "passes": list(self.passes),
                },
                errors=dict(self.errors),
            )
        except Exception as e:
            logger.error(
                f"Finalizing run {self.context.run_id} failed: {e}",
                extra={"run_id": self.context.run_id, "error": str(e)},
                exc_info=True,
            )
            raise FinalizationError(f"Finalizing run {self.context.run_id} failed: {e}") from e

        logger.info(
            f"Run {self.context.run_id} finalized: {self.stats.tests} tests, "
            f"{self.stats.passes} passed, {self.stats.failures} failed, "
            f"{self.stats.pending} pending",
            extra={"run_id": self.context.run_id, **self.stats.to_dict()},
        )
        return bundle

    def _sanitize_all(self, outcomes: List[Any], labels: LabelSet) -> List[Dict[str, Any]]:
        return [
            sanitize(outcome, labels, self.labels.tests, err=self.errors.get(id(outcome)))
            for outcome in outcomes
        ]
