"""
Mastery store.

Holds the UserFactMastery records of a single user. The store hands out
copies; only BoundaryTracker writes back through ``put``.
"""
from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from zenjin.core.errors import InvariantViolation
from zenjin.core.models import UserFactMastery


class MasteryStore:
    """Per-user map of fact id to mastery record."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self._records: dict[str, UserFactMastery] = {}

    def __contains__(self, fact_id: object) -> bool:
        return fact_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[UserFactMastery]:
        for record in self._records.values():
            yield record.copy()

    def get(self, fact_id: str) -> UserFactMastery | None:
        record = self._records.get(fact_id)
        return record.copy() if record else None

    def put(self, record: UserFactMastery) -> None:
        if record.user_id != self.user_id:
            raise InvariantViolation(
                f"Mastery record for user {record.user_id!r} written to store of {self.user_id!r}"
            )
        self._records[record.fact_id] = record.copy()

    def to_list(self) -> list[dict[str, Any]]:
        return [self._records[fact_id].to_dict() for fact_id in sorted(self._records)]

    @classmethod
    def from_list(cls, user_id: str, rows: list[dict[str, Any]]) -> MasteryStore:
        store = cls(user_id)
        for row in rows:
            store.put(UserFactMastery.from_dict(row))
        return store
