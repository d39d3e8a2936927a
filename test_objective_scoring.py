from __future__ import annotations

import pytest

from conftest import sheet
from engine.adapter import adapt_spec
from engine.objective_scoring import (
    calculate_objective_scores,
    score_objective,
    traffic_light,
)
from schemas.taxonomy import Objective


def _by_id(scores):
    return {s["objective_id"]: s for s in scores}


class TestCriticalOverride:
    def test_full_score_with_critical_not_applicable_is_yellow(self, spec):
        # q1 is excluded from the score but still a failed critical
        result = score_objective(spec, spec.objective_index["obj_budget"], sheet(q1="N/A"))
        assert result["score"] == 100
        assert result["questions_total"] == 1
        assert result["status"] == "yellow"
        assert result["overridden"] is True
        assert result["failed_criticals"] == ["q1"]
        assert "100%" in result["override_reason"]

    def test_green_band_with_critical_false_is_yellow(self, raw_spec):
        raw_spec["objectives"][0]["thresholds"] = {"green": 50, "yellow": 25}
        spec = adapt_spec(raw_spec)
        result = score_objective(spec, spec.objective_index["obj_budget"], sheet(q1=False))
        assert result["score"] == 50
        assert result["status"] == "yellow"
        assert result["overridden"] is True

    def test_override_only_pushes_down(self, spec):
        # Already yellow on its own merits: not an override
        result = score_objective(spec, spec.objective_index["obj_close"], sheet(q3=False))
        assert result["score"] == 50
        assert result["status"] == "yellow"
        assert result["overridden"] is False
        assert result["override_reason"] is None

    def test_red_stays_red(self, spec):
        result = score_objective(spec, spec.objective_index["obj_close"], sheet(q3=False, q4=False))
        assert result["status"] == "red"
        assert result["overridden"] is False


class TestScores:
    def test_all_true_is_green(self, spec, all_true):
        scores = _by_id(calculate_objective_scores(spec, all_true))
        assert list(scores) == ["obj_budget", "obj_close", "obj_insight"]
        assert all(s["status"] == "green" and s["score"] == 100 for s in scores.values())

    def test_unanswered_counts_as_failure(self, spec):
        result = score_objective(spec, spec.objective_index["obj_insight"], sheet(q5=None))
        assert result["questions_total"] == 2
        assert result["questions_passed"] == 1
        assert result["score"] == 50

    def test_per_objective_thresholds(self, spec):
        # obj_insight: green >= 90, yellow >= 60
        result = score_objective(spec, spec.objective_index["obj_insight"], sheet(q6=False))
        assert result["score"] == 50
        assert result["status"] == "red"

    def test_all_not_applicable_scores_zero(self, spec):
        result = score_objective(spec, spec.objective_index["obj_insight"], sheet(q5="N/A", q6="N/A"))
        assert result["questions_total"] == 0
        assert result["score"] == 0
        assert result["status"] == "red"


def test_traffic_light_bands():
    objective = Objective(objective_id="o", pillar_id="p", name="O", level=1)
    assert traffic_light(80, objective) == "green"
    assert traffic_light(79, objective) == "yellow"
    assert traffic_light(50, objective) == "yellow"
    assert traffic_light(49, objective) == "red"
