"""
Diff Detection Module - Compares a freshly reconciled directory with the
previously stored one.

Outputs, per unit id:
- unchanged: Same fingerprint as before
- changed: Fingerprint differs (with the list of changed fields)
- new: Unit not in the previous directory
- missing: Unit was in the previous directory but not in this run

The reconciliation timestamp is ignored; it changes on every run.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence

from ..models import CanonicalRecord
from .hashing import compute_record_hash

IGNORED_FIELDS = ("last_reconciled_at",)


class DiffStatus(Enum):
    """Status of a record in the diff."""
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    NEW = "new"
    MISSING = "missing"


@dataclass
class DirectoryDiff:
    """Unit ids grouped by diff status."""
    unchanged: List[str] = field(default_factory=list)
    changed: Dict[str, List[str]] = field(default_factory=dict)  # unit_id -> fields
    new: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed or self.new or self.missing)

    def summary(self) -> Dict[str, int]:
        return {
            DiffStatus.UNCHANGED.value: len(self.unchanged),
            DiffStatus.CHANGED.value: len(self.changed),
            DiffStatus.NEW.value: len(self.new),
            DiffStatus.MISSING.value: len(self.missing),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary(),
            "changed": {k: list(v) for k, v in self.changed.items()},
            "new": list(self.new),
            "missing": list(self.missing),
        }


def _changed_fields(old: Dict[str, Any], new: Dict[str, Any]) -> List[str]:
    keys = [k for k in new.keys() if k not in IGNORED_FIELDS]
    keys += [k for k in old.keys() if k not in new and k not in IGNORED_FIELDS]
    return [k for k in keys if old.get(k) != new.get(k)]


def compute_directory_diff(
    previous: Sequence[CanonicalRecord],
    current: Sequence[CanonicalRecord],
) -> DirectoryDiff:
    """
    Classify every unit id across two directory versions.

    Args:
        previous: Directory as last stored
        current: Directory produced by this run

    Returns:
        DirectoryDiff; lists follow current order (missing follows previous order)
    """
    diff = DirectoryDiff()
    old_by_id = {r.unit_id: r.to_dict() for r in previous}
    current_ids = set()

    for record in current:
        current_ids.add(record.unit_id)
        new_data = record.to_dict()
        old_data = old_by_id.get(record.unit_id)

        if old_data is None:
            diff.new.append(record.unit_id)
        elif compute_record_hash(old_data, IGNORED_FIELDS) == compute_record_hash(new_data, IGNORED_FIELDS):
            diff.unchanged.append(record.unit_id)
        else:
            diff.changed[record.unit_id] = _changed_fields(old_data, new_data)

    diff.missing = [r.unit_id for r in previous if r.unit_id not in current_ids]
    return diff
