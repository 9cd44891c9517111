"""Archival document that nests tests under the suites they belong to."""

from typing import Any, Dict, List, Optional, Tuple

from label_reporter.records.base import Status
from label_reporter.records.sanitize import clean_error

# Buffer name -> result of the outcomes buffered there
_RESULT_BUFFERS = (
    ("pending", Status.PENDING),
    ("failures", Status.FAILED),
    ("passes", Status.PASSED),
)


def _test_entry(outcome, status: Optional[Status], err: Any) -> Dict[str, Any]:
    return {
        "title": outcome.title,
        "result": status.value if status is not None else None,
        "duration": outcome.duration,
        "err": clean_error(err, prefer_message=False),
    }


def _suite_node(title: str) -> Dict[str, Any]:
    return {"title": title, "tests": [], "suites": []}


def result_index(raw: Dict[str, List[Any]]) -> Dict[int, Status]:
    """Map id() of every buffered outcome to the result of its buffer."""
    index: Dict[int, Status] = {}
    for key, status in _RESULT_BUFFERS:
        for outcome in raw.get(key, []):
            index[id(outcome)] = status
    return index


def suite_tree(
    outcomes: List[Any],
    results: Optional[Dict[int, Status]] = None,
    errors: Optional[Dict[int, Any]] = None,
) -> Dict[str, Any]:
    """Group outcomes into nested suites, keeping first-seen order."""
    results = results or {}
    errors = errors or {}
    root = _suite_node("")
    index: Dict[Tuple[str, ...], Dict[str, Any]] = {(): root}
    for outcome in outcomes:
        node = root
        path: Tuple[str, ...] = ()
        for title in getattr(outcome, "suite_path", ()):
            path += (title,)
            child = index.get(path)
            if child is None:
                child = index[path] = _suite_node(title)
                node["suites"].append(child)
            node = child
        node["tests"].append(
            _test_entry(outcome, results.get(id(outcome)), errors.get(id(outcome), outcome.err))
        )
    return root


def hierarchy_document(bundle) -> Dict[str, Any]:
    results = result_index(bundle.raw)
    root = suite_tree(bundle.raw.get("tests", []), results, bundle.errors)
    document = {"stats": bundle.stats.to_dict(), "suites": root["suites"]}
    # Tests declared outside of any suite
    if root["tests"]:
        document["tests"] = root["tests"]
    for key, status in _RESULT_BUFFERS:
        document[key] = [
            _test_entry(outcome, status, bundle.errors.get(id(outcome), outcome.err))
            for outcome in bundle.raw.get(key, [])
        ]
    return document
