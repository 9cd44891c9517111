"""pytest plugin feeding test results into the label reporter.

Enable with ``-p label_reporter.pytest_plugin --label-report``. Tests can
attach labels through the ``run_labels`` and ``test_labels`` fixtures.
"""

import uuid
from datetime import datetime, timezone

import pytest

from label_reporter.config import DEFAULT_OUTPUT
from label_reporter.context import ReporterOptions, RunContext
from label_reporter.logging_config import get_logger
from label_reporter.records.base import TestOutcome
from label_reporter.records.labels import LabelStore
from label_reporter.report.emit import BundleEmitter
from label_reporter.runner.aggregate import RunAggregator

logger = get_logger("plugin")

_PLUGIN_NAME = "label_reporter_session"


def pytest_addoption(parser):
    group = parser.getgroup("label-report", "labelled JSON test report")
    group.addoption(
        "--label-report",
        action="store_true",
        default=False,
        help="Write a labelled JSON report and record stream for this run",
    )
    group.addoption(
        "--label-report-output",
        default=None,
        metavar="PATH",
        help=f"Path of the JSON report (default: {DEFAULT_OUTPUT})",
    )


def pytest_configure(config):
    if config.getoption("label_report"):
        options = ReporterOptions(output=config.getoption("label_report_output"))
        config.pluginmanager.register(LabelReportPlugin(options), _PLUGIN_NAME)


def pytest_unconfigure(config):
    plugin = config.pluginmanager.get_plugin(_PLUGIN_NAME)
    if plugin is not None:
        config.pluginmanager.unregister(plugin)


@pytest.fixture(scope="session")
def run_labels(request):
    """Labels attached to every record of the run."""
    plugin = request.config.pluginmanager.get_plugin(_PLUGIN_NAME)
    return plugin.labels.run if plugin is not None else {}


@pytest.fixture
def test_labels(request):
    """Labels attached to the current test's record only."""
    plugin = request.config.pluginmanager.get_plugin(_PLUGIN_NAME)
    if plugin is None:
        return {}
    return plugin.labels.for_test(request.node.nodeid)


def _suite_path(nodeid: str):
    # "tests/test_x.py::TestA::test_b[1]" -> ("tests/test_x.py", "TestA")
    return tuple(nodeid.split("::")[:-1])


class LabelReportPlugin:
    def __init__(self, options: ReporterOptions):
        self.options = options
        self.labels = LabelStore()
        self.aggregator = RunAggregator(RunContext(run_id=uuid.uuid4().hex), self.labels)
        self._suites = set()
        self._started = datetime.now(timezone.utc)

    @pytest.hookimpl(hookwrapper=True)
    def pytest_runtest_makereport(self, item, call):
        result = yield
        self._record(item, call, result.get_result())

    def _record(self, item, call, report) -> None:
        # A passed setup is followed by the call phase; teardown never
        # changes the recorded outcome.
        if report.when == "setup" and report.passed:
            return
        if report.when not in ("setup", "call"):
            return

        outcome = TestOutcome(
            id=item.nodeid,
            title=item.name,
            file=report.location[0],
            duration=round(report.duration * 1000),
            suite_path=_suite_path(item.nodeid),
            retries=getattr(report, "rerun", 0),
        )
        self._enter_suites(outcome.suite_path)

        if report.skipped:
            self.aggregator.on_pending(outcome)
        elif report.failed:
            err = call.excinfo.value if call.excinfo is not None else None
            self.aggregator.on_fail(outcome, err)
        else:
            self.aggregator.on_pass(outcome)
        self.aggregator.on_test_end(outcome)

    def _enter_suites(self, path) -> None:
        for depth in range(1, len(path) + 1):
            prefix = path[:depth]
            if prefix not in self._suites:
                self._suites.add(prefix)
                self.aggregator.on_suite_start(prefix[-1])

    def pytest_sessionfinish(self, session, exitstatus):
        end = datetime.now(timezone.utc)
        bundle = self.aggregator.on_run_end(
            start=self._started.isoformat(),
            end=end.isoformat(),
            duration=round((end - self._started).total_seconds() * 1000),
        )
        # Records go to the terminal so they are not lost to output capturing
        stream = session.config.pluginmanager.get_plugin("terminalreporter")
        if stream is not None:
            # The progress line has no trailing newline yet
            stream.ensure_newline()
        path = BundleEmitter(self.options, stream=stream).emit(bundle)
        logger.debug(f"Label report written to {path}", extra={"output": path})
