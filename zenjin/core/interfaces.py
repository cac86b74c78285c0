"""
Interfaces for the engine's external collaborators.

The engine never performs I/O itself; hosts plug in implementations of these
protocols (see zenjin.content and zenjin.persistence for reference ones).
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from zenjin.core.models import Fact, PathDefinition, Stitch

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class FactRepository(Protocol):
    """Content lookup by id. Used only to validate that a fact exists."""

    def get_fact_by_id(self, fact_id: str) -> Fact:
        """Return the fact or raise FactNotFound."""
        ...


class StitchContentProvider(Protocol):
    """Supplies paths and their ordered stitches at user initialization."""

    def get_paths(self) -> list[PathDefinition]:
        """Exactly three path definitions, in helix order."""
        ...

    def get_initial_stitches(self, path_id: str) -> list[Stitch]:
        """Stitches of one path in their authored queue order."""
        ...


class PersistenceGateway(Protocol):
    """Durable storage for exported user snapshots."""

    def save(self, user_id: str, snapshot: dict[str, Any]) -> None:
        ...

    def load(self, user_id: str) -> dict[str, Any] | None:
        ...

    def delete(self, user_id: str) -> bool:
        ...
