"""
Path state.

Holds the TripleHelixState of one user: three paths, exactly one active.
Reads hand out copies; PathRotator is the only writer.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any

from zenjin.core.errors import (
    InvariantViolation,
    NoActivePath,
    NoTripleHelixState,
    PathNotFound,
)
from zenjin.core.models import HelixPath, PathStatus, TripleHelixState

HELIX_SIZE = 3


class PathState:
    """Container for a user's triple helix, empty until initialized."""

    def __init__(self, user_id: str, state: TripleHelixState | None = None):
        self.user_id = user_id
        self._state = state

    @property
    def initialized(self) -> bool:
        return self._state is not None

    def require(self) -> TripleHelixState:
        """The live state object (writers only)."""
        if self._state is None:
            raise NoTripleHelixState(self.user_id)
        return self._state

    def replace_state(self, state: TripleHelixState) -> None:
        check_helix(state)
        self._state = state

    def snapshot(self) -> TripleHelixState:
        state = self.require()
        return replace(state, paths=[replace(path) for path in state.paths])

    def active(self) -> HelixPath:
        state = self.require()
        for path in state.paths:
            if path.is_active:
                return replace(path)
        raise NoActivePath(self.user_id)

    def preparing(self) -> list[HelixPath]:
        return [replace(path) for path in self.require().paths if not path.is_active]

    def find(self, path_id: str) -> HelixPath:
        for path in self.require().paths:
            if path.path_id == path_id:
                return replace(path)
        raise PathNotFound(self.user_id, path_id)

    def to_dict(self) -> dict[str, Any] | None:
        return self._state.to_dict() if self._state else None

    @classmethod
    def from_dict(cls, user_id: str, data: dict[str, Any] | None) -> PathState:
        if data is None:
            return cls(user_id)
        state = TripleHelixState.from_dict(data)
        if state.user_id != user_id:
            raise InvariantViolation(
                f"Triple helix snapshot for {state.user_id!r} loaded for {user_id!r}"
            )
        check_helix(state)
        return cls(user_id, state)


def check_helix(state: TripleHelixState) -> None:
    """Raise InvariantViolation unless the helix has three paths, exactly one active."""
    if len(state.paths) != HELIX_SIZE:
        raise InvariantViolation(
            f"Triple helix for {state.user_id!r} has {len(state.paths)} paths"
        )
    if len({path.path_id for path in state.paths}) != HELIX_SIZE:
        raise InvariantViolation(f"Duplicate path ids in triple helix for {state.user_id!r}")
    active = [path for path in state.paths if path.status is PathStatus.ACTIVE]
    if len(active) != 1:
        raise InvariantViolation(
            f"Triple helix for {state.user_id!r} has {len(active)} active paths"
        )
    for path in state.paths:
        if not 1 <= path.difficulty <= 5:
            raise InvariantViolation(f"Path {path.path_id!r} difficulty {path.difficulty} out of range")
        if path.rotations_since_active < 0:
            raise InvariantViolation(f"Path {path.path_id!r} has negative rotations_since_active")
    if state.rotation_count < 0 or state.answers_since_rotation < 0:
        raise InvariantViolation(f"Negative rotation counters for {state.user_id!r}")
