"""Membership sets and the builder that accumulates them during a run."""

import threading
from typing import Dict, Iterable, Iterator, Mapping


class MembershipSet:
    """
    Frozen set of matched item ids.

    The persisted form is a flat JSON object mapping decimal-string ids to
    ``true``. Ids are always held as strings.
    """

    def __init__(self, ids: Iterable[object] = ()):
        self._members: Dict[str, bool] = dict.fromkeys((str(i) for i in ids), True)

    @classmethod
    def from_document(cls, document: Mapping[str, object]) -> "MembershipSet":
        """Build a set from a published document; every key is a member."""
        if not isinstance(document, Mapping):
            raise TypeError("Membership document must be a JSON object")
        return cls(document.keys())

    def to_document(self) -> Dict[str, bool]:
        return dict(self._members)

    def ids(self) -> list:
        """Member ids in insertion order."""
        return list(self._members)

    def __contains__(self, item_id: object) -> bool:
        return str(item_id) in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MembershipSet):
            return NotImplemented
        return set(self._members) == set(other._members)

    def __repr__(self) -> str:
        return f"MembershipSet({sorted(self._members)!r})"


class SetBuilder:
    """Accumulates matched ids for one run; safe to call from worker threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._members: Dict[str, bool] = {}

    def record(self, item_id: object) -> None:
        """Mark an item as matched. Recording the same id twice is a no-op."""
        with self._lock:
            self._members[str(item_id)] = True

    def build(self) -> MembershipSet:
        with self._lock:
            return MembershipSet(self._members)

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)
