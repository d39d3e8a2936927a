import os

import pytest
from pydantic import ValidationError

from engine.config import EngineSettings, load_settings, parse_score_bands
from schemas.calibration import CalibrationParams, PlanningContextParams

FINDIAG_VARS = (
    "FINDIAG_SPEC_FAMILY",
    "FINDIAG_SPEC_VERSION",
    "FINDIAG_SCORE_BANDS",
    "FINDIAG_CRITICAL_MULTIPLIER",
    "FINDIAG_PAIN_POINT_BOOST",
    "FINDIAG_FOCUS_LIMIT",
    "FINDIAG_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # No FINDIAG_* variables leak in from the developer shell
    monkeypatch.chdir(tmp_path)
    for name in FINDIAG_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    assert load_settings() == EngineSettings()


def test_environment_overrides(clean_env):
    clean_env.setenv("FINDIAG_SPEC_VERSION", "v2.7.0")
    clean_env.setenv("FINDIAG_SCORE_BANDS", "2:40,3:70,4:90")
    clean_env.setenv("FINDIAG_CRITICAL_MULTIPLIER", "3")
    clean_env.setenv("FINDIAG_FOCUS_LIMIT", "5")
    clean_env.setenv("FINDIAG_LOG_LEVEL", "debug")

    settings = load_settings()
    assert settings.spec_version == "v2.7.0"
    assert settings.score_thresholds == {2: 40.0, 3: 70.0, 4: 90.0}
    assert settings.critical_multiplier == 3.0
    assert settings.focus_limit == 5
    assert settings.log_level == "DEBUG"


def test_dotenv_file_is_read(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("FINDIAG_PAIN_POINT_BOOST=1.5\n", encoding="utf-8")
    try:
        assert load_settings(str(env_file)).pain_point_boost == 1.5
    finally:
        os.environ.pop("FINDIAG_PAIN_POINT_BOOST", None)


def test_real_environment_wins_over_dotenv(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("FINDIAG_FOCUS_LIMIT=9\n", encoding="utf-8")
    clean_env.setenv("FINDIAG_FOCUS_LIMIT", "2")
    assert load_settings(str(env_file)).focus_limit == 2


class TestScoreBands:
    def test_parse(self):
        assert parse_score_bands("2:50, 3:80 ,4:95") == {2: 50.0, 3: 80.0, 4: 95.0}

    @pytest.mark.parametrize("raw,match", [
        ("2-50", "Malformed"),
        ("1:10", "2..4"),
        ("2:80,3:50", "not monotonic"),
    ])
    def test_rejects(self, raw, match):
        with pytest.raises(ValueError, match=match):
            parse_score_bands(raw)


class TestInputModels:
    def test_importance_out_of_range(self):
        with pytest.raises(ValidationError, match="importance must be 1..5"):
            CalibrationParams(importance_map={"obj_budget": 6})

    def test_planning_context_defaults(self):
        context = PlanningContextParams()
        assert (context.team_size, context.bandwidth, context.time_horizon) == (5, "limited", "12m")

    @pytest.mark.parametrize("field,value", [
        ("team_size", 0), ("bandwidth", "lots"), ("time_horizon", "36m"), ("target_level", 5),
    ])
    def test_planning_context_rejects(self, field, value):
        with pytest.raises(ValidationError):
            PlanningContextParams(**{field: value})
