"""Label normalization into the flat ``label_`` namespace."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from label_reporter.config import LABEL_PREFIX

LabelSet = Dict[str, Any]


def normalize(labels: LabelSet) -> LabelSet:
    """Move every unprefixed key to ``label_<key>`` in place.

    Keys that already carry the prefix are left alone, so normalizing twice
    gives the same result as normalizing once.
    """
    for key in list(labels):
        if key.startswith(LABEL_PREFIX):
            continue
        labels[LABEL_PREFIX + key] = labels.pop(key)
    return labels


def strip_test_artifacts(labels: LabelSet, test_ids: Iterable[str]) -> LabelSet:
    """Remove ``label_<test_id>`` entries left by a store keyed by test id."""
    for test_id in test_ids:
        labels.pop(LABEL_PREFIX + str(test_id), None)
    return labels


def suite_labels(run_labels: LabelSet, test_ids: Iterable[str]) -> LabelSet:
    """Build the suite-level label set from a copy of the run labels."""
    return strip_test_artifacts(normalize(dict(run_labels)), test_ids)


@dataclass
class LabelStore:
    """Suite-level labels plus per-test labels keyed by test id."""

    run: LabelSet = field(default_factory=dict)
    tests: Dict[str, LabelSet] = field(default_factory=dict)

    @classmethod
    def from_shared(cls, shared: Mapping) -> "LabelStore":
        """Split a single mapping that mixes run labels and per-test sets.

        Nested mappings are taken as per-test label sets under their test
        id; every other entry is a run label.
        """
        store = cls()
        for key, value in shared.items():
            if isinstance(value, Mapping):
                store.tests[key] = dict(value)
            else:
                store.run[key] = value
        return store

    def for_test(self, test_id: str) -> LabelSet:
        """Return the (mutable) label set of a test, creating it if needed."""
        return self.tests.setdefault(test_id, {})
