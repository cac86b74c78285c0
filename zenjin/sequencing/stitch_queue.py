"""
Stitch queue.

Ordered list of stitch ids for one (user, path). A stitch's position is its
index, so positions are always the dense permutation 0..N-1.

Each queued stitch keeps the fact ids it was queued with, so the question
flow never has to go back to the content provider after initialization.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from zenjin.core.errors import InvariantViolation, PathNotFound, StitchNotFound
from zenjin.core.models import RepositionResult, StitchProgress


class StitchQueue:
    """Priority queue of stitches for one learning path."""

    def __init__(
        self,
        path_id: str,
        stitch_ids: Iterable[str] = (),
        fact_ids: Mapping[str, Iterable[str]] | None = None,
    ):
        self.path_id = path_id
        self._order: list[str] = list(stitch_ids)
        if len(set(self._order)) != len(self._order):
            raise InvariantViolation(f"Duplicate stitch ids in queue for path {path_id!r}")
        fact_ids = fact_ids or {}
        self._facts: dict[str, tuple[str, ...]] = {
            stitch_id: tuple(fact_ids.get(stitch_id, ())) for stitch_id in self._order
        }

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._order))

    def __contains__(self, stitch_id: object) -> bool:
        return stitch_id in self._order

    def front(self) -> str | None:
        """Stitch at position 0, or None for an empty queue."""
        return self._order[0] if self._order else None

    def peek(self, position: int) -> str | None:
        if 0 <= position < len(self._order):
            return self._order[position]
        return None

    def position_of(self, stitch_id: str) -> int:
        try:
            return self._order.index(stitch_id)
        except ValueError:
            raise StitchNotFound(stitch_id, self.path_id) from None

    def fact_ids(self, stitch_id: str) -> tuple[str, ...]:
        self.position_of(stitch_id)
        return self._facts[stitch_id]

    def primary_fact_id(self, stitch_id: str) -> str:
        """First fact of a queued stitch; the one a question is drawn from."""
        facts = self.fact_ids(stitch_id)
        if not facts:
            raise InvariantViolation(
                f"Stitch {stitch_id!r} in path {self.path_id!r} was queued without facts"
            )
        return facts[0]

    def positions(self) -> dict[str, int]:
        """StitchQueuePosition view: stitch id -> position."""
        return {stitch_id: index for index, stitch_id in enumerate(self._order)}

    def snapshot(self) -> list[str]:
        return list(self._order)

    def append(self, stitch_id: str, fact_ids: Iterable[str] = ()) -> int:
        """Add a newly authored stitch at the back of the queue."""
        if stitch_id in self._order:
            raise InvariantViolation(
                f"Stitch {stitch_id!r} already queued in path {self.path_id!r}"
            )
        self._order.append(stitch_id)
        self._facts[stitch_id] = tuple(fact_ids)
        return len(self._order) - 1

    def remove(self, stitch_id: str) -> int:
        """Drop a stitch; everything behind it moves up one slot. Returns its old position."""
        position = self.position_of(stitch_id)
        remaining = [queued for queued in self._order if queued != stitch_id]
        self._order = remaining
        del self._facts[stitch_id]
        return position

    def move(self, from_position: int, to_position: int) -> None:
        """
        Remove the stitch at ``from_position`` and reinsert it at ``to_position``.

        Every stitch in between shifts by one slot. The new order is built
        aside and swapped in with a single assignment, so a failure leaves the
        queue untouched.
        """
        size = len(self._order)
        if not (0 <= from_position < size and 0 <= to_position < size):
            raise InvariantViolation(
                f"Move {from_position}->{to_position} outside queue of {size} in path {self.path_id!r}"
            )
        reordered = list(self._order)
        stitch_id = reordered.pop(from_position)
        reordered.insert(to_position, stitch_id)
        self.check_dense(reordered)
        self._order = reordered

    def check_dense(self, order: list[str] | None = None) -> None:
        """Raise InvariantViolation unless positions form 0..N-1 over the same stitches."""
        candidate = self._order if order is None else order
        if len(candidate) != len(self._order) or set(candidate) != set(self._order):
            raise InvariantViolation(f"Queue for path {self.path_id!r} lost or gained stitches")
        if len(set(candidate)) != len(candidate):
            raise InvariantViolation(f"Duplicate positions in queue for path {self.path_id!r}")


class UserQueues:
    """All stitch queues of one user, with repositioning history and stitch progress."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        self._queues: dict[str, StitchQueue] = {}
        self._history: dict[tuple[str, str], list[RepositionResult]] = {}
        self._progress: dict[tuple[str, str], StitchProgress] = {}

    def __contains__(self, path_id: object) -> bool:
        return path_id in self._queues

    def path_ids(self) -> list[str]:
        return list(self._queues)

    def add_path(
        self,
        path_id: str,
        stitch_ids: Iterable[str],
        fact_ids: Mapping[str, Iterable[str]] | None = None,
    ) -> StitchQueue:
        if path_id in self._queues:
            raise InvariantViolation(f"Queue for path {path_id!r} already exists")
        queue = StitchQueue(path_id, stitch_ids, fact_ids)
        self._queues[path_id] = queue
        return queue

    def queue(self, path_id: str) -> StitchQueue:
        try:
            return self._queues[path_id]
        except KeyError:
            raise PathNotFound(self.user_id, path_id) from None

    def history(self, path_id: str, stitch_id: str) -> list[RepositionResult]:
        """Results for one stitch, newest first."""
        return list(self._history.get((path_id, stitch_id), []))

    def record(self, result: RepositionResult, limit: int) -> None:
        entries = self._history.setdefault((result.path_id, result.stitch_id), [])
        entries.insert(0, result)
        del entries[limit:]

    def progress(self, path_id: str, stitch_id: str) -> StitchProgress | None:
        progress = self._progress.get((path_id, stitch_id))
        return StitchProgress(**vars(progress)) if progress else None

    def put_progress(self, progress: StitchProgress) -> None:
        self._progress[(progress.path_id, progress.stitch_id)] = progress

    def discard(self, path_id: str, stitch_id: str) -> int:
        """Remove a stitch from its queue along with its history and progress."""
        position = self.queue(path_id).remove(stitch_id)
        self._history.pop((path_id, stitch_id), None)
        self._progress.pop((path_id, stitch_id), None)
        return position

    def to_dict(self) -> dict[str, Any]:
        return {
            "queues": {
                path_id: [
                    {
                        "stitch_id": stitch_id,
                        "position": position,
                        "fact_ids": list(queue.fact_ids(stitch_id)),
                    }
                    for stitch_id, position in queue.positions().items()
                ]
                for path_id, queue in self._queues.items()
            },
            "history": [
                result.to_dict()
                for entries in self._history.values()
                for result in entries
            ],
            "progress": [self._progress[key].to_dict() for key in sorted(self._progress)],
        }

    @classmethod
    def from_dict(cls, user_id: str, data: dict[str, Any]) -> UserQueues:
        """
        Rebuild queues from StitchQueuePosition rows.

        Raises:
            InvariantViolation: if a path's positions are not exactly 0..N-1,
                or a queued stitch carries no facts
        """
        queues = cls(user_id)
        for path_id, rows in data.get("queues", {}).items():
            ordered = sorted(rows, key=lambda row: row["position"])
            positions = [row["position"] for row in ordered]
            if positions != list(range(len(ordered))):
                raise InvariantViolation(
                    f"Positions for path {path_id!r} are not a dense permutation: {positions}"
                )
            fact_ids = {row["stitch_id"]: row["fact_ids"] for row in ordered}
            if not all(fact_ids.values()):
                raise InvariantViolation(f"Queue for path {path_id!r} has stitches without facts")
            queues.add_path(path_id, [row["stitch_id"] for row in ordered], fact_ids)
        # Stored newest first per stitch; append keeps that order.
        for row in data.get("history", []):
            result = RepositionResult.from_dict(row)
            queues._history.setdefault((result.path_id, result.stitch_id), []).append(result)
        for row in data.get("progress", []):
            progress = StitchProgress.from_dict(row)
            if progress.user_id != user_id:
                raise InvariantViolation(
                    f"Stitch progress for {progress.user_id!r} loaded for {user_id!r}"
                )
            queues.put_progress(progress)
        return queues
