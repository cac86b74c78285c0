"""
SQLAlchemy models for persisted engine state.

One table per record type:
- user_fact_mastery: UserFactMastery
- stitch_queue_positions: StitchQueuePosition
- triple_helix_state / helix_paths: TripleHelixState
- reposition_history: RepositionResult history
- stitch_progress: StitchProgress

Timestamps are stored as ISO strings so timezone information survives SQLite.
"""

from __future__ import annotations

from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class UserFactMasteryRow(Base):
    """Boundary tracking record per learner per fact."""

    __tablename__ = "user_fact_mastery"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    fact_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    mastery_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.5)
    consecutive_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_incorrect: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_response_time_ms: Mapped[int | None] = mapped_column(Integer)
    last_attempt_at: Mapped[str | None] = mapped_column(Text)
    last_demoted_at: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<UserFactMasteryRow user={self.user_id} fact={self.fact_id} level={self.current_level}>"


class StitchQueuePositionRow(Base):
    """Position of a stitch in one learner's path queue."""

    __tablename__ = "stitch_queue_positions"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    path_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    stitch_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    fact_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("user_id", "path_id", "position", name="uq_queue_position"),
    )


class TripleHelixStateRow(Base):
    """Rotation counters per learner."""

    __tablename__ = "triple_helix_state"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    rotation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_rotation_at: Mapped[str | None] = mapped_column(Text)
    answers_since_rotation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class HelixPathRow(Base):
    """One of the three learning paths of a learner's helix."""

    __tablename__ = "helix_paths"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("triple_helix_state.user_id", ondelete="CASCADE"), primary_key=True
    )
    path_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    rotations_since_active: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_stitch_id: Mapped[str | None] = mapped_column(String(128))
    next_stitch_id: Mapped[str | None] = mapped_column(String(128))


class RepositionHistoryRow(Base):
    """Repositioning results, newest first per stitch via ``seq``."""

    __tablename__ = "reposition_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    path_id: Mapped[str] = mapped_column(String(128), nullable=False)
    stitch_id: Mapped[str] = mapped_column(String(128), nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_position: Mapped[int] = mapped_column(Integer, nullable=False)
    new_position: Mapped[int] = mapped_column(Integer, nullable=False)
    skip_number: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_reposition_history_stitch", "user_id", "path_id", "stitch_id"),
    )


class StitchProgressRow(Base):
    """Cumulative pass results per learner per stitch."""

    __tablename__ = "stitch_progress"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    path_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    stitch_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    completion_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    mastery_level: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_attempt_at: Mapped[str | None] = mapped_column(Text)
