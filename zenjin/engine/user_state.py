"""
Per-user state handle.

Bundles the three stores a user owns (mastery records, stitch queues, triple
helix) so every engine call is scoped to one explicit handle instead of
process-wide maps. ``transaction()`` gives all-or-nothing semantics across the
three stores.
"""
from __future__ import annotations

import copy
import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger

from zenjin.core.errors import InvariantViolation, log_invariant_violation
from zenjin.helix.path_state import PathState
from zenjin.mastery.mastery_store import MasteryStore
from zenjin.sequencing.stitch_queue import UserQueues

SNAPSHOT_VERSION = 1


class UserState:
    """Everything the engine knows about one user."""

    def __init__(
        self,
        user_id: str,
        mastery: MasteryStore | None = None,
        queues: UserQueues | None = None,
        helix: PathState | None = None,
    ):
        self.user_id = user_id
        self.mastery = mastery or MasteryStore(user_id)
        self.queues = queues or UserQueues(user_id)
        self.helix = helix or PathState(user_id)
        self.lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Generator[UserState, None, None]:
        """
        Provide an all-or-nothing scope around a series of mutations.

        The stores are snapshotted on entry and restored if the block raises.
        """
        saved = (
            copy.deepcopy(self.mastery),
            copy.deepcopy(self.queues),
            copy.deepcopy(self.helix),
        )
        try:
            yield self
        except InvariantViolation as exc:
            log_invariant_violation(exc, user_id=self.user_id)
            self.mastery, self.queues, self.helix = saved
            raise
        except Exception:  # Intentionally broad - restore on any error before re-raising
            self.mastery, self.queues, self.helix = saved
            logger.debug(f"Rolled back state for {self.user_id}")
            raise

    def to_dict(self) -> dict[str, Any]:
        """Full snapshot: UserFactMastery, StitchQueuePosition and TripleHelixState records."""
        return {
            "version": SNAPSHOT_VERSION,
            "user_id": self.user_id,
            "mastery": self.mastery.to_list(),
            **self.queues.to_dict(),
            "helix": self.helix.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserState:
        """
        Rehydrate a snapshot produced by ``to_dict``.

        Raises:
            InvariantViolation: corrupt or foreign snapshot
        """
        if not isinstance(data, dict):
            raise InvariantViolation(f"Snapshot must be a mapping, got {type(data).__name__}")
        if data.get("version") != SNAPSHOT_VERSION:
            raise InvariantViolation(f"Unsupported snapshot version: {data.get('version')!r}")
        try:
            user_id = data["user_id"]
            return cls(
                user_id,
                mastery=MasteryStore.from_list(user_id, data.get("mastery", [])),
                queues=UserQueues.from_dict(user_id, data),
                helix=PathState.from_dict(user_id, data.get("helix")),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvariantViolation(f"Corrupt snapshot: {type(exc).__name__}: {exc}") from exc
