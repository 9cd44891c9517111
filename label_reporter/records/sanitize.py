"""Turn raw test outcomes into JSON-safe, label-flattened records."""

import inspect
import math
import traceback
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, Optional, Set

from label_reporter.logging_config import get_logger
from label_reporter.records.labels import LabelSet, normalize

logger = get_logger("records")

OBJECT_PLACEHOLDER = "[object Object]"
# A cut list gets its own marker so readers can tell it from a cut
# mapping or object; the list contents are gone either way.
ARRAY_PLACEHOLDER = "[object Array]"

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def error_to_dict(exc: BaseException) -> Dict[str, Any]:
    """Copy every attribute of an exception into a plain dict.

    ``name``, ``message``, ``stack`` and ``args`` are not part of
    ``vars(exc)`` and are extracted explicitly; custom attributes set on the
    instance (``code``, ``actual``, ...) follow.
    """
    res: Dict[str, Any] = {"name": type(exc).__name__, "message": str(exc)}
    if exc.__traceback__ is not None:
        res["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ).rstrip("\n")
    res["args"] = list(exc.args)
    res.update(vars(exc))
    return res


def serialize_acyclic(value: Any) -> Any:
    """Convert ``value`` into JSON-compatible data, cutting reference cycles.

    A container met again on the current path is replaced by its
    placeholder string instead of being walked a second time.
    """
    return _walk(value, set())


def _placeholder(value: Any) -> str:
    if isinstance(value, _SEQUENCE_TYPES):
        return ARRAY_PLACEHOLDER
    return OBJECT_PLACEHOLDER


def _walk(value: Any, path: Set[int]) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Enum):
        return _walk(value.value, path)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if inspect.isroutine(value) or isinstance(value, type):
        return str(value)

    marker = id(value)
    if marker in path:
        return _placeholder(value)
    path.add(marker)
    try:
        if isinstance(value, Mapping):
            return {str(k): _walk(v, path) for k, v in value.items()}
        if isinstance(value, _SEQUENCE_TYPES):
            return [_walk(item, path) for item in value]
        if isinstance(value, BaseException):
            return _walk(error_to_dict(value), path)
        if hasattr(value, "__dict__"):
            return {
                str(k): _walk(v, path)
                for k, v in vars(value).items()
                if not str(k).startswith("_")
            }
        return str(value)
    finally:
        path.discard(marker)


def _error_mapping(err: Any) -> Optional[Dict[str, Any]]:
    if isinstance(err, BaseException):
        return error_to_dict(err)
    if isinstance(err, Mapping):
        return dict(err)
    if isinstance(err, (str, bytes, int, float, bool) + _SEQUENCE_TYPES):
        return None
    if hasattr(err, "__dict__"):
        return dict(vars(err))
    return None


def clean_error(err: Any, prefer_message: bool = True) -> Any:
    """Reduce an error payload to its message or a cycle-free dump.

    With ``prefer_message`` off the full dump is returned even when the
    payload has a message. Returns ``{}`` when there is no error or the
    payload cannot be read as an object.
    """
    if err is None:
        return {}
    try:
        data = _error_mapping(err)
        if data is None:
            logger.warning(
                f"Ignoring error payload of type {type(err).__name__}",
                extra={"error_type": type(err).__name__},
            )
            return {}
        message = data.get("message")
        if prefer_message and isinstance(message, str) and message:
            return message
        # The payload itself is an ancestor of everything in its dump
        return _walk(data, {id(err)})
    except Exception as e:
        logger.warning(
            f"Could not convert error payload of type {type(err).__name__}: {e}",
            extra={"error_type": type(err).__name__, "error": str(e)},
            exc_info=True,
        )
        return {}


def sanitize(
    outcome,
    suite_labels: LabelSet,
    test_labels: Optional[Dict[str, LabelSet]] = None,
    err: Any = None,
) -> Dict[str, Any]:
    """Build the flat record of one outcome.

    Suite labels are overridden by the test's own labels, and both by the
    fixed fields. The test's label set is normalized in place. ``err``
    replaces ``outcome.err`` when given.
    """
    if err is None:
        err = outcome.err
    own = (test_labels or {}).get(outcome.id)

    record: Dict[str, Any] = dict(suite_labels)
    if own:
        record.update(normalize(own))
    record.update(
        title=outcome.title,
        fullTitle=outcome.full_title(),
        file=outcome.file,
        duration=outcome.duration,
        currentRetry=outcome.current_retry(),
        err=clean_error(err),
    )
    return record
