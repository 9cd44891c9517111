import pytest
from label_reporter.context import RunContext
from label_reporter.records.base import TestOutcome
from label_reporter.records.labels import LabelStore

pytest_plugins = ["pytester"]


class AssertionLikeError(AssertionError):
    """Assertion error carrying diagnostic attributes, as assertion libraries raise."""

    def __init__(self, message="", **attrs):
        super().__init__(message)
        for key, value in attrs.items():
            setattr(self, key, value)


@pytest.fixture
def run_context():
    """Run context for testing."""
    return RunContext(run_id="run-1", app="qa-tests")


@pytest.fixture
def label_store():
    """Label store with one suite label and labels for test t1."""
    return LabelStore(run={"env": "staging"}, tests={"t1": {"owner": "alice"}})


@pytest.fixture
def make_outcome():
    """Factory for test outcomes inside 'suite 1'."""

    def _make(test_id, title, err=None, **kwargs):
        kwargs.setdefault("file", "tests/sample_test.py")
        kwargs.setdefault("duration", 5)
        kwargs.setdefault("suite_path", ("suite 1",))
        return TestOutcome(id=test_id, title=title, err=err, **kwargs)

    return _make


@pytest.fixture
def assertion_error():
    """Failure raised like a Node assertion: message plus hidden code."""
    return AssertionLikeError(
        "null == true",
        code="ERR_ASSERTION",
        actual=None,
        expected=True,
        operator="==",
    )


@pytest.fixture
def assertion_error_cls():
    return AssertionLikeError
