"""
Configuration settings for the Zenjin sequencing engine.

Uses Pydantic Settings for environment variable management with .env file support.
Engine constants live in EngineTuning and are injected into each component at
construction time, so tests and hosts can swap them without touching globals.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".zenjin"


class EngineTuning(BaseModel):
    """Tunable constants for boundary tracking, repositioning and rotation."""

    # ─── Boundary tracking ──────────────────────────────────────────────────────
    mastery_alpha: float = Field(
        default=0.2,
        gt=0.0,
        le=1.0,
        description="EWMA weight applied to each attempt when updating masteryScore",
    )
    initial_mastery_score: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="masteryScore assigned to a freshly initialized fact",
    )
    promote_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive correct first attempts required to promote one level",
    )
    demote_threshold: int = Field(
        default=2,
        ge=1,
        description="Consecutive incorrect first attempts required to demote one level",
    )
    demotion_dwell_seconds: float = Field(
        default=600.0,
        ge=0.0,
        description="Session window during which a fact cannot be demoted twice",
    )
    level_response_ceilings_ms: dict[int, int] = Field(
        default_factory=lambda: {1: 5000, 2: 4000, 3: 3000, 4: 2500, 5: 2000},
        description="Response must be faster than this ceiling (per level) to promote",
    )

    # ─── Stitch repositioning ───────────────────────────────────────────────────
    base_skip: int = Field(default=32, ge=1, description="BASE_SKIP scaling factor")
    min_skip: int = Field(default=1, ge=1, description="Smallest forward displacement")
    expected_response_ms: float = Field(
        default=2000.0,
        gt=0.0,
        description="Expected average response time used for the speed factor",
    )
    speed_factor_min: float = Field(default=0.5, gt=0.0)
    speed_factor_max: float = Field(default=1.5, gt=0.0)
    history_limit: int = Field(
        default=50,
        ge=1,
        description="Repositioning results kept per stitch",
    )

    # ─── Path rotation ──────────────────────────────────────────────────────────
    rotation_cadence: int = Field(
        default=5,
        ge=1,
        description="Answers between cadence-triggered rotations",
    )

    @field_validator("level_response_ceilings_ms")
    @classmethod
    def _all_levels_have_ceilings(cls, value: dict[int, int]) -> dict[int, int]:
        missing = {1, 2, 3, 4, 5} - set(value)
        if missing:
            raise ValueError(f"response ceilings missing for levels {sorted(missing)}")
        if any(ceiling <= 0 for ceiling in value.values()):
            raise ValueError("response ceilings must be positive")
        return value

    @model_validator(mode="after")
    def _speed_bounds_ordered(self) -> EngineTuning:
        if self.speed_factor_min > self.speed_factor_max:
            raise ValueError("speed_factor_min must not exceed speed_factor_max")
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ZENJIN_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: str = Field(default="INFO", description="Loguru level for the stderr sink")
    log_json: bool = Field(default=False, description="Emit serialized JSON log records")

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(default=DEFAULT_DATA_DIR, description="Local state directory")
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for SqlStateStore (defaults to SQLite under data_dir)",
    )

    # ========================================
    # Engine
    # ========================================
    initial_difficulty: int = Field(default=1, ge=1, le=5)
    tuning: EngineTuning = Field(default_factory=EngineTuning)

    @property
    def states_dir(self) -> Path:
        """Directory used by the JSON state store."""
        return self.data_dir / "states"

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'zenjin.db'}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
