"""Action prioritization and initiative grouping.

The P1 tier is computed from potential_level.  A capped organisation
(high execution score, low actual level) must still see the critical
actions that unlock its next level.
"""
from __future__ import annotations

import pytest

from conftest import sheet
from engine.maturity import calculate_maturity
from engine.prioritization import (
    calculate_score,
    context_modifier,
    estimate_effort,
    generate_action_text,
    group_actions_by_initiative,
    importance_multiplier,
    prioritize_actions,
)
from schemas.calibration import CalibrationParams, PlanningContextParams
from schemas.taxonomy import Question


def _prioritize(spec, answers, **kwargs):
    return prioritize_actions(spec, answers, calculate_maturity(spec, answers), **kwargs)


class TestTiers:
    def test_capped_org_still_sees_unlock_action(self, spec):
        answers = sheet(q3=False)
        maturity = calculate_maturity(spec, answers)
        assert maturity["actual_level"] == 1
        assert maturity["potential_level"] == 3

        actions = prioritize_actions(spec, answers, maturity)
        assert [(a["question_id"], a["priority"]) for a in actions] == [("q3", "P1")]
        assert actions[0]["impact"] == "Unlocks next maturity level"
        assert actions[0]["score"] == 10.0

    def test_unanswered_critical_is_p1(self, spec):
        actions = _prioritize(spec, sheet(q1=None))
        assert actions == [{
            "priority": "P1",
            "question_id": "q1",
            "question_text": "Is there an approved annual budget?",
            "action_title": "Publish a budget calendar",
            "action_text": "Publish a budget calendar",
            "action_type": "quick_win",
            "impact": "Unlocks next maturity level",
            "effort": "medium",
            "level": 1,
            "score": 25.0,
            "is_critical": True,
            "objective_id": "obj_budget",
            "initiative_id": "init_baseline",
        }]

    def test_p2_then_p3_and_nothing_beyond_next_level(self, spec):
        answers = sheet(q2=False, q4=False, q5=False, q6=False)
        actions = _prioritize(spec, answers)
        assert [(a["question_id"], a["priority"]) for a in actions] == [("q2", "P2"), ("q4", "P3")]
        assert actions[0]["action_text"] == "Implement: maintain a documented chart of accounts"
        assert actions[0]["impact"] == "Strengthens current level"
        assert actions[1]["impact"] == "Prepares for next level"
        assert actions[1]["effort"] == "low"

    def test_not_applicable_never_produces_action(self, spec):
        assert _prioritize(spec, sheet(q2="N/A")) == []

    def test_p1_sorted_by_score(self, spec):
        actions = _prioritize(spec, sheet(q1=False, q3=False))
        assert [(a["question_id"], a["score"]) for a in actions] == [("q1", 25.0), ("q3", 10.0)]


class TestScoreComponents:
    @pytest.mark.parametrize("importance,multiplier", [(1, 0.5), (2, 0.75), (3, 1.0), (4, 1.25), (5, 1.5)])
    def test_importance_multiplier(self, importance, multiplier):
        assert importance_multiplier(importance) == multiplier

    def test_critical_doubles(self, spec):
        assert calculate_score(spec.question("q3")) == 8.0
        assert calculate_score(spec.question("q4")) == 4.0

    @pytest.mark.parametrize("impact,complexity,importance_mult,expected", [
        (5, 4, 1.0, 6.3),
        (3, 3, 0.75, 2.3),
        (1, 1, 1.25, 1.3),
    ])
    def test_score_ties_round_up(self, impact, complexity, importance_mult, expected):
        question = Question("qx", "fpa", "Is it done?", 2, impact=impact, complexity=complexity)
        assert calculate_score(question, importance_mult) == expected

    def test_calibration_overrides_default_importance(self, spec):
        calibration = CalibrationParams(importance_map={"obj_budget": 5})
        actions = _prioritize(spec, sheet(q1=None), calibration=calibration)
        assert actions[0]["score"] == 37.5

    def test_pain_point_boost(self, spec):
        context = PlanningContextParams(pain_points=["long_budget_cycles"])
        assert context_modifier(spec, "obj_budget", context) == 1.25
        assert context_modifier(spec, "obj_close", context) == 1.0
        assert context_modifier(spec, "obj_budget", None) == 1.0

    def test_effort_from_complexity(self, spec):
        assert estimate_effort(spec.question("q4")) == "low"
        assert estimate_effort(spec.question("q1")) == "medium"
        assert estimate_effort(spec.question("q6")) == "high"

    def test_action_text_rewrites_question(self, spec):
        assert generate_action_text(spec.question("q3")) == (
            "Ensure: balance sheet reconciliations reviewed monthly"
        )
        assert generate_action_text(spec.question("q5")) == (
            "Complete: the forecast been reconciled to actuals each quarter"
        )


class TestInitiatives:
    def test_grouping_by_tier_then_total(self, spec):
        actions = _prioritize(spec, sheet(q2=False, q4=False, q5=False, q6=False))
        grouping = group_actions_by_initiative(actions, spec)
        assert [(i["initiative_id"], i["priority"], i["total_score"]) for i in grouping["initiatives"]] == [
            ("init_baseline", "P2", 3.0),
            # q4 alone: 2² / 1 × 1.25 from obj_close's default importance of 4
            ("init_close", "P3", 5.0),
        ]
        assert grouping["ungrouped"] == []

    def test_initiative_takes_best_tier_and_sums_scores(self, spec):
        actions = _prioritize(spec, sheet(q1=False, q2=False))
        grouping = group_actions_by_initiative(actions, spec)
        baseline = grouping["initiatives"][0]
        assert baseline["initiative_title"] == "Budget baseline"
        assert baseline["priority"] == "P1"
        assert [a["question_id"] for a in baseline["actions"]] == ["q1", "q2"]
        assert baseline["total_score"] == 28.0

    def test_actions_without_initiative_are_ungrouped(self, spec):
        actions = _prioritize(spec, sheet(q5=False))
        grouping = group_actions_by_initiative(actions, spec)
        assert grouping["initiatives"] == []
        assert [a["question_id"] for a in grouping["ungrouped"]] == ["q5"]

    def test_unknown_initiative_is_ungrouped(self, spec, caplog):
        actions = _prioritize(spec, sheet(q1=None))
        actions[0] = {**actions[0], "initiative_id": "init_ghost"}
        grouping = group_actions_by_initiative(actions, spec)
        assert grouping["initiatives"] == []
        assert len(grouping["ungrouped"]) == 1
        assert "init_ghost" in caplog.text
