#!/usr/bin/env python3
"""Basic usage example for the label reporter.

This example demonstrates how to:
1. Create a run context and a label store
2. Feed lifecycle events into a run aggregator
3. Finalize the run
4. Write the archival document and the record stream
"""

import sys
from pathlib import Path

from label_reporter import (
    BundleEmitter,
    LabelStore,
    ReporterOptions,
    RunAggregator,
    RunContext,
    TestOutcome,
)
from label_reporter.logging_config import setup_logging


class AssertionFailure(AssertionError):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


def main():
    """Run basic reporting example."""
    setup_logging(level="INFO")

    # 1. Run context and labels
    labels = LabelStore(run={"env": "staging", "branch": "main"})
    labels.for_test("suite-1/test-pass")["owner"] = "alice"
    aggregator = RunAggregator(RunContext(run_id="example-run"), labels)

    # 2. Events as an execution engine would deliver them
    aggregator.on_suite_start("suite 1")
    passed = TestOutcome(id="suite-1/test-pass", title="test pass", file="sample.py", duration=3, suite_path=("suite 1",))
    failed = TestOutcome(id="suite-1/test-fail", title="test fail", file="sample.py", duration=1, suite_path=("suite 1",))
    skipped = TestOutcome(id="suite-1/skipped", title="skipped test", file="sample.py", suite_path=("suite 1",))

    aggregator.on_pass(passed)
    aggregator.on_test_end(passed)
    aggregator.on_fail(failed, AssertionFailure("null == true", code="ERR_ASSERTION"))
    aggregator.on_test_end(failed)
    aggregator.on_pending(skipped)
    aggregator.on_test_end(skipped)

    # 3. Finalize
    bundle = aggregator.on_run_end()

    # 4. Write outputs
    out_dir = Path("example_reports")
    options = ReporterOptions(
        output=str(out_dir / "test-report.json"),
        records_output=str(out_dir / "records.json"),
    )
    path = BundleEmitter(options, stream=sys.stdout).emit(bundle)
    print(f"Report written to {path}", file=sys.stderr)


if __name__ == "__main__":
    main()
