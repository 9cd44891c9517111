from dataclasses import dataclass
from typing import Any, Optional

import pytest
from unittest.mock import patch
from label_reporter.exceptions import AggregatorStateError, FinalizationError
from label_reporter.records.labels import LabelStore
from label_reporter.runner.aggregate import AggregatorState, RunAggregator


@dataclass(frozen=True)
class EngineOutcome:
    """Outcome owned by an engine that does not allow writes."""

    id: str
    title: str
    file: Optional[str] = "tests/sample_test.py"
    duration: Optional[float] = 5
    err: Any = None

    def full_title(self):
        return f"suite 1 {self.title}"

    def current_retry(self):
        return 0


def _run_sample(aggregator, make_outcome, err):
    """One suite with a passing, a failing and a skipped test."""
    passed = make_outcome("t1", "test pass")
    failed = make_outcome("t2", "test fail")
    skipped = make_outcome("t3", "skipped test")

    aggregator.on_suite_start("suite 1")
    aggregator.on_pass(passed)
    aggregator.on_test_end(passed)
    aggregator.on_fail(failed, err)
    aggregator.on_test_end(failed)
    aggregator.on_pending(skipped)
    aggregator.on_test_end(skipped)
    return passed, failed, skipped


class TestRunAggregator:
    def test_starts_collecting(self, run_context):
        aggregator = RunAggregator(run_context)
        assert aggregator.state is AggregatorState.COLLECTING

    def test_end_to_end(self, run_context, make_outcome, assertion_error):
        aggregator = RunAggregator(run_context)
        _run_sample(aggregator, make_outcome, assertion_error)

        bundle = aggregator.on_run_end()

        assert aggregator.state is AggregatorState.FINALIZED
        assert bundle.stats.to_dict() == {
            "suites": 1,
            "tests": 3,
            "passes": 1,
            "pending": 1,
            "failures": 1,
        }
        assert [r["title"] for r in bundle.passes] == ["test pass"]
        assert bundle.passes[0]["err"] == {}
        assert [r["title"] for r in bundle.failures] == ["test fail"]
        assert bundle.failures[0]["err"] == "null == true"
        assert [r["title"] for r in bundle.pending] == ["skipped test"]
        assert bundle.pending[0]["err"] == {}

    def test_no_double_counting(self, run_context, make_outcome, assertion_error):
        aggregator = RunAggregator(run_context)
        _run_sample(aggregator, make_outcome, assertion_error)

        bundle = aggregator.on_run_end()

        assert len(bundle.tests) == 3
        assert len(bundle.pending) + len(bundle.failures) + len(bundle.passes) == 3

    def test_buffering_order(self, run_context, make_outcome):
        aggregator = RunAggregator(run_context)
        for i in range(3):
            outcome = make_outcome(f"t{i}", f"test {i}")
            aggregator.on_pass(outcome)
            aggregator.on_test_end(outcome)

        bundle = aggregator.on_run_end()

        assert [r["title"] for r in bundle.tests] == ["test 0", "test 1", "test 2"]
        assert [r["title"] for r in bundle.passes] == ["test 0", "test 1", "test 2"]

    def test_outcomes_left_untouched(self, run_context, make_outcome, assertion_error):
        aggregator = RunAggregator(run_context)
        passed, failed, skipped = _run_sample(aggregator, make_outcome, assertion_error)

        bundle = aggregator.on_run_end()

        assert failed.err is None
        assert bundle.errors == {id(failed): assertion_error}
        assert bundle.failures[0]["err"] == "null == true"

    def test_frozen_outcomes(self, run_context, assertion_error):
        aggregator = RunAggregator(run_context)
        passed = EngineOutcome("t1", "test pass")
        failed = EngineOutcome("t2", "test fail")
        skipped = EngineOutcome("t3", "skipped test")
        crashed = EngineOutcome("t4", "own error", err={"message": "engine error"})

        aggregator.on_pass(passed)
        aggregator.on_test_end(passed)
        aggregator.on_fail(failed, assertion_error)
        aggregator.on_test_end(failed)
        aggregator.on_pending(skipped)
        aggregator.on_test_end(skipped)
        aggregator.on_fail(crashed)
        aggregator.on_test_end(crashed)
        bundle = aggregator.on_run_end()

        assert [r["err"] for r in bundle.failures] == ["null == true", "engine error"]
        assert bundle.passes[0]["fullTitle"] == "suite 1 test pass"
        assert bundle.pending[0]["currentRetry"] == 0

    def test_suite_and_test_labels(self, run_context, label_store, make_outcome):
        aggregator = RunAggregator(run_context, label_store)
        first = make_outcome("t1", "first")
        second = make_outcome("t2", "second")
        for outcome in (first, second):
            aggregator.on_pass(outcome)
            aggregator.on_test_end(outcome)

        bundle = aggregator.on_run_end()

        assert bundle.suite_labels == {"label_env": "staging"}
        assert bundle.passes[0]["label_env"] == "staging"
        assert bundle.passes[0]["label_owner"] == "alice"
        assert "label_owner" not in bundle.passes[1]
        # run labels are copied, not normalized in place
        assert label_store.run == {"env": "staging"}

    def test_suite_label_leak_prevention(self, run_context, make_outcome):
        store = LabelStore(run={"env": "ci", "label_t1": "leaked", "t2": "leaked"})
        aggregator = RunAggregator(run_context, store)
        for test_id in ("t1", "t2"):
            outcome = make_outcome(test_id, test_id)
            aggregator.on_pass(outcome)
            aggregator.on_test_end(outcome)

        bundle = aggregator.on_run_end()

        assert bundle.suite_labels == {"label_env": "ci"}
        assert "label_t1" not in bundle.tests[0]

    def test_empty_run_has_no_suite_labels(self, run_context, label_store):
        aggregator = RunAggregator(run_context, label_store)

        bundle = aggregator.on_run_end()

        assert bundle.suite_labels == {}
        assert bundle.tests == []
        assert bundle.stats.tests == 0

    def test_failure_without_test_end_is_label_source(self, run_context, label_store, make_outcome):
        aggregator = RunAggregator(run_context, label_store)
        aggregator.on_fail(make_outcome("hook", "before all hook"), {"message": "setup broke"})

        bundle = aggregator.on_run_end()

        assert bundle.suite_labels == {"label_env": "staging"}
        assert bundle.failures[0]["err"] == "setup broke"
        assert bundle.tests == []

    def test_host_timing_copied(self, run_context):
        aggregator = RunAggregator(run_context)
        bundle = aggregator.on_run_end(start="2024-01-01T00:00:00", end="2024-01-01T00:00:01", duration=1000)

        stats = bundle.stats.to_dict()
        assert stats["start"] == "2024-01-01T00:00:00"
        assert stats["end"] == "2024-01-01T00:00:01"
        assert stats["duration"] == 1000

    def test_second_run_end_rejected(self, run_context):
        aggregator = RunAggregator(run_context)
        aggregator.on_run_end()

        with pytest.raises(AggregatorStateError):
            aggregator.on_run_end()

    @pytest.mark.parametrize("event", ["on_test_end", "on_pass", "on_fail", "on_pending"])
    def test_events_after_finalize_rejected(self, run_context, make_outcome, event):
        aggregator = RunAggregator(run_context)
        aggregator.on_run_end()

        with pytest.raises(AggregatorStateError):
            getattr(aggregator, event)(make_outcome("t1", "late"))
        assert aggregator.tests == []

    def test_suite_start_after_finalize_rejected(self, run_context):
        aggregator = RunAggregator(run_context)
        aggregator.on_run_end()

        with pytest.raises(AggregatorStateError):
            aggregator.on_suite_start("late suite")

    @patch("label_reporter.runner.aggregate.sanitize")
    def test_sanitize_failure_wrapped(self, mock_sanitize, run_context, make_outcome):
        mock_sanitize.side_effect = RuntimeError("broken outcome")
        aggregator = RunAggregator(run_context)
        outcome = make_outcome("t1", "test")
        aggregator.on_pass(outcome)
        aggregator.on_test_end(outcome)

        with pytest.raises(FinalizationError):
            aggregator.on_run_end()
        assert aggregator.state is AggregatorState.FINALIZED
