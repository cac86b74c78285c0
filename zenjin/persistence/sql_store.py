"""
SQLAlchemy persistence for user snapshots.

Writes the records of a snapshot into their own tables inside one
transaction, so a reader never sees half of a user's state. Defaults to
SQLite; any SQLAlchemy URL works.
"""
from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker

from zenjin.engine.user_state import SNAPSHOT_VERSION
from zenjin.persistence.models import (
    Base,
    HelixPathRow,
    RepositionHistoryRow,
    StitchProgressRow,
    StitchQueuePositionRow,
    TripleHelixStateRow,
    UserFactMasteryRow,
)

_USER_TABLES = (
    UserFactMasteryRow,
    StitchProgressRow,
    StitchQueuePositionRow,
    HelixPathRow,
    TripleHelixStateRow,
    RepositionHistoryRow,
)

_MASTERY_FIELDS = (
    "fact_id",
    "current_level",
    "mastery_score",
    "consecutive_correct",
    "consecutive_incorrect",
    "last_response_time_ms",
    "last_attempt_at",
    "last_demoted_at",
)

_PATH_FIELDS = (
    "path_id",
    "name",
    "description",
    "status",
    "difficulty",
    "rotations_since_active",
    "current_stitch_id",
    "next_stitch_id",
)


class SqlStateStore:
    """Stores engine snapshots in relational tables."""

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("State tables initialized")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    def save(self, user_id: str, snapshot: dict[str, Any]) -> None:
        """Replace every stored record of a user with the snapshot's records."""
        with self.session_scope() as session:
            self._delete_user(session, user_id)

            for record in snapshot.get("mastery", []):
                session.add(UserFactMasteryRow(user_id=user_id, **{f: record[f] for f in _MASTERY_FIELDS}))

            for path_id, rows in snapshot.get("queues", {}).items():
                for row in rows:
                    session.add(
                        StitchQueuePositionRow(
                            user_id=user_id,
                            path_id=path_id,
                            stitch_id=row["stitch_id"],
                            position=row["position"],
                            fact_ids=list(row["fact_ids"]),
                        )
                    )

            for progress in snapshot.get("progress", []):
                session.add(StitchProgressRow(**progress))

            helix = snapshot.get("helix")
            if helix is not None:
                session.add(
                    TripleHelixStateRow(
                        user_id=user_id,
                        rotation_count=helix["rotation_count"],
                        last_rotation_at=helix["last_rotation_at"],
                        answers_since_rotation=helix["answers_since_rotation"],
                    )
                )
                for slot, path in enumerate(helix["paths"]):
                    session.add(
                        HelixPathRow(user_id=user_id, slot=slot, **{f: path[f] for f in _PATH_FIELDS})
                    )

            for seq, entry in enumerate(snapshot.get("history", [])):
                session.add(RepositionHistoryRow(user_id=user_id, seq=seq, **entry))

        logger.debug(f"Saved state for {user_id} to {self.engine.url.get_backend_name()}")

    def load(self, user_id: str) -> dict[str, Any] | None:
        """Rebuild a snapshot from the tables, or None if the user has no records."""
        with self.session_scope() as session:
            helix_row = session.get(TripleHelixStateRow, user_id)
            mastery_rows = session.scalars(
                select(UserFactMasteryRow)
                .where(UserFactMasteryRow.user_id == user_id)
                .order_by(UserFactMasteryRow.fact_id)
            ).all()
            queue_rows = session.scalars(
                select(StitchQueuePositionRow)
                .where(StitchQueuePositionRow.user_id == user_id)
                .order_by(StitchQueuePositionRow.path_id, StitchQueuePositionRow.position)
            ).all()

            if helix_row is None and not mastery_rows and not queue_rows:
                return None

            path_rows = session.scalars(
                select(HelixPathRow).where(HelixPathRow.user_id == user_id).order_by(HelixPathRow.slot)
            ).all()
            history_rows = session.scalars(
                select(RepositionHistoryRow)
                .where(RepositionHistoryRow.user_id == user_id)
                .order_by(RepositionHistoryRow.seq)
            ).all()
            progress_rows = session.scalars(
                select(StitchProgressRow)
                .where(StitchProgressRow.user_id == user_id)
                .order_by(StitchProgressRow.path_id, StitchProgressRow.stitch_id)
            ).all()

            queues: dict[str, list[dict[str, Any]]] = {}
            for row in queue_rows:
                queues.setdefault(row.path_id, []).append(
                    {"stitch_id": row.stitch_id, "position": row.position, "fact_ids": list(row.fact_ids)}
                )

            helix = None
            if helix_row is not None:
                helix = {
                    "user_id": user_id,
                    "paths": [{f: getattr(row, f) for f in _PATH_FIELDS} for row in path_rows],
                    "rotation_count": helix_row.rotation_count,
                    "last_rotation_at": helix_row.last_rotation_at,
                    "answers_since_rotation": helix_row.answers_since_rotation,
                }

            return {
                "version": SNAPSHOT_VERSION,
                "user_id": user_id,
                "mastery": [
                    {"user_id": user_id, **{f: getattr(row, f) for f in _MASTERY_FIELDS}}
                    for row in mastery_rows
                ],
                "queues": queues,
                "history": [
                    {
                        "stitch_id": row.stitch_id,
                        "path_id": row.path_id,
                        "previous_position": row.previous_position,
                        "new_position": row.new_position,
                        "skip_number": row.skip_number,
                        "timestamp": row.timestamp,
                    }
                    for row in history_rows
                ],
                "progress": [
                    {
                        "user_id": user_id,
                        "path_id": row.path_id,
                        "stitch_id": row.stitch_id,
                        "completion_count": row.completion_count,
                        "correct_count": row.correct_count,
                        "total_count": row.total_count,
                        "mastery_level": row.mastery_level,
                        "last_attempt_at": row.last_attempt_at,
                    }
                    for row in progress_rows
                ],
                "helix": helix,
            }

    def delete(self, user_id: str) -> bool:
        with self.session_scope() as session:
            return self._delete_user(session, user_id) > 0

    @staticmethod
    def _delete_user(session: Session, user_id: str) -> int:
        removed = 0
        for table in _USER_TABLES:
            result = session.execute(delete(table).where(table.user_id == user_id))
            removed += result.rowcount or 0
        return removed
