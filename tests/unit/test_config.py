"""
Unit tests for settings and engine tuning.
"""

import pytest
from pydantic import ValidationError

from config import EngineTuning, Settings


class TestEngineTuning:
    def test_defaults(self):
        tuning = EngineTuning()

        assert tuning.promote_threshold == 3
        assert tuning.demote_threshold == 2
        assert tuning.base_skip == 32
        assert tuning.level_response_ceilings_ms[1] == 5000
        assert tuning.level_response_ceilings_ms[5] == 2000

    def test_missing_ceiling_rejected(self):
        with pytest.raises(ValidationError):
            EngineTuning(level_response_ceilings_ms={1: 5000, 2: 4000})

    def test_speed_bounds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            EngineTuning(speed_factor_min=2.0, speed_factor_max=1.0)

    def test_alpha_must_be_positive(self):
        with pytest.raises(ValidationError):
            EngineTuning(mastery_alpha=0)


class TestSettings:
    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ZENJIN_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("ZENJIN_TUNING__BASE_SKIP", "16")

        settings = Settings()

        assert settings.states_dir == tmp_path / "states"
        assert settings.tuning.base_skip == 16
        assert settings.resolved_database_url == f"sqlite:///{tmp_path / 'zenjin.db'}"

    def test_explicit_database_url(self):
        settings = Settings(database_url="postgresql://localhost/zenjin")
        assert settings.resolved_database_url == "postgresql://localhost/zenjin"
