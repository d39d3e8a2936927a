from __future__ import annotations

from conftest import sheet
from engine.action_plan import derive_actions, derive_actions_from_objectives
from engine.adapter import adapt_spec
from engine.critical_risks import derive_critical_risks
from engine.maturity import pillar_gate_maturity, rollup_weakest_link


def _evaluate(spec, answers):
    risks = derive_critical_risks(spec, answers)
    per_pillar = pillar_gate_maturity(spec, answers)
    return risks, rollup_weakest_link(per_pillar), per_pillar


class TestLegacyActions:
    def test_all_true_has_no_actions(self, spec, all_true):
        assert derive_actions(spec, *_evaluate(spec, all_true)) == []

    def test_critical_risk_bumps_medium_to_high(self, spec):
        actions = derive_actions(spec, *_evaluate(spec, sheet(q1=False)))
        assert actions == [{
            "id": "act_budget_calendar",
            "title": "Introduce a budget calendar",
            "description": "Agree owners and deadlines.",
            "rationale": "No baseline.",
            "priority": "high",
            "trigger_type": "critical_risk",
            "evidence_id": "q1",
            "pillar_id": "fpa",
        }]

    def test_sorted_critical_before_high(self, spec):
        actions = derive_actions(spec, *_evaluate(spec, sheet(q1=False, q3=False)))
        assert [a["id"] for a in actions] == ["act_recon_review", "act_budget_calendar"]
        assert [a["priority"] for a in actions] == ["critical", "high"]

    def test_gate_blocker_keeps_base_priority(self, raw_spec):
        raw_spec["questions"][3]["trigger_action_id"] = "act_insight"
        spec = adapt_spec(raw_spec)
        actions = derive_actions(spec, *_evaluate(spec, sheet(q4=False)))
        assert len(actions) == 1
        assert actions[0]["trigger_type"] == "maturity_blocker"
        assert actions[0]["priority"] == "medium"
        assert actions[0]["pillar_id"] == "ctl"

    def test_unknown_action_is_skipped(self, raw_spec, caplog):
        raw_spec["questions"][3]["trigger_action_id"] = "act_missing"
        spec = adapt_spec(raw_spec)
        assert derive_actions(spec, *_evaluate(spec, sheet(q4=False))) == []
        assert "act_missing" in caplog.text


class TestObjectiveActions:
    def test_complete_objectives_have_no_action(self, spec, all_true):
        risks, overall, _ = _evaluate(spec, all_true)
        assert derive_actions_from_objectives(spec, all_true, risks, overall) == []

    def test_critical_risk_objective_is_high(self, spec):
        answers = sheet(q1=False)
        risks, overall, _ = _evaluate(spec, answers)
        actions = derive_actions_from_objectives(spec, answers, risks, overall)
        assert [(a["objective_id"], a["derived_priority"], a["trigger_reason"]) for a in actions] == [
            ("obj_budget", "HIGH", "critical_risk"),
        ]

    def test_blocker_high_then_incomplete_medium(self, spec):
        answers = sheet(q2=False, q6=False)
        risks, overall, _ = _evaluate(spec, answers)
        actions = derive_actions_from_objectives(spec, answers, risks, overall)
        assert [(a["objective_id"], a["derived_priority"], a["trigger_reason"]) for a in actions] == [
            ("obj_budget", "HIGH", "maturity_blocker"),
            ("obj_insight", "MEDIUM", "objective_incomplete"),
        ]
        assert actions[1]["id"] == "act_insight"
        assert actions[1]["level"] == 3

    def test_not_applicable_leaves_objective_incomplete(self, spec):
        answers = sheet(q6="N/A")
        risks, overall, _ = _evaluate(spec, answers)
        actions = derive_actions_from_objectives(spec, answers, risks, overall)
        assert [a["objective_id"] for a in actions] == ["obj_insight"]

    def test_unknown_action_is_skipped(self, raw_spec, caplog):
        raw_spec["objectives"][2]["action_id"] = "act_gone"
        spec = adapt_spec(raw_spec)
        answers = sheet(q1=False, q5=False)
        risks, overall, _ = _evaluate(spec, answers)
        actions = derive_actions_from_objectives(spec, answers, risks, overall)
        assert [a["objective_id"] for a in actions] == ["obj_budget"]
        assert "act_gone" in caplog.text
