"""Shared fixtures: a small flat spec covering two pillars and four levels.

    q1  fpa  L1  critical  obj_budget   act_budget_calendar   init_baseline
    q2  fpa  L1            obj_budget                         init_baseline
    q3  ctl  L2  critical  obj_close    act_recon_review      init_close
    q4  ctl  L2            obj_close                          init_close
    q5  fpa  L3            obj_insight
    q6  fpa  L4            obj_insight
"""
from __future__ import annotations

import copy

import pytest

from engine.adapter import adapt_spec
from schemas.answers import AnswerSheet

MINI_SPEC = {
    "version": "mini-1.0",
    "schema": "flat",
    "pillars": [
        {"id": "fpa", "name": "FP&A"},
        {"id": "ctl", "name": "Controls"},
    ],
    "questions": [
        {
            "id": "q1", "pillar": "fpa", "level": 1, "is_critical": True,
            "text": "Is there an approved annual budget?",
            "objective_id": "obj_budget", "trigger_action_id": "act_budget_calendar",
            "initiative_id": "init_baseline", "impact": 5, "complexity": 2,
            "expert_action": {"title": "Publish a budget calendar", "type": "quick_win"},
        },
        {
            "id": "q2", "pillar": "fpa", "level": 1,
            "text": "Does the company maintain a documented chart of accounts?",
            "objective_id": "obj_budget", "initiative_id": "init_baseline",
            "impact": 3, "complexity": 3,
        },
        {
            "id": "q3", "pillar": "ctl", "level": 2, "is_critical": True,
            "text": "Are balance sheet reconciliations reviewed monthly?",
            "objective_id": "obj_close", "trigger_action_id": "act_recon_review",
            "initiative_id": "init_close", "impact": 4, "complexity": 4,
        },
        {
            "id": "q4", "pillar": "ctl", "level": 2,
            "text": "Can the books be closed within ten working days?",
            "objective_id": "obj_close", "initiative_id": "init_close",
            "impact": 2, "complexity": 1,
        },
        {
            "id": "q5", "pillar": "fpa", "level": 3,
            "text": "Has the forecast been reconciled to actuals each quarter?",
            "objective_id": "obj_insight", "impact": 3, "complexity": 3,
        },
        {
            "id": "q6", "pillar": "fpa", "level": 4,
            "text": "Are planning models driven by operational drivers?",
            "objective_id": "obj_insight", "impact": 4, "complexity": 5,
        },
    ],
    "objectives": [
        {
            "id": "obj_budget", "pillar": "fpa", "name": "Budget baseline", "level": 1,
            "action_id": "act_budget_calendar", "pain_point_tags": ["long_budget_cycles"],
        },
        {
            "id": "obj_close", "pillar": "ctl", "name": "Close discipline", "level": 2,
            "action_id": "act_recon_review", "default_importance": 4,
        },
        {
            "id": "obj_insight", "pillar": "fpa", "name": "Forward insight", "level": 3,
            "action_id": "act_insight", "thresholds": {"green": 90, "yellow": 60},
        },
    ],
    "actions": [
        {"id": "act_budget_calendar", "title": "Introduce a budget calendar",
         "description": "Agree owners and deadlines.", "rationale": "No baseline.",
         "priority": "medium"},
        {"id": "act_recon_review", "title": "Review reconciliations",
         "description": "Monthly sign-off.", "rationale": "Misstatement risk.",
         "priority": "critical"},
        {"id": "act_insight", "title": "Build a rolling forecast",
         "description": "Quarterly reforecast.", "rationale": "Forward view.",
         "priority": "medium"},
    ],
    "initiatives": [
        {"id": "init_baseline", "title": "Budget baseline", "theme_id": "planning"},
        {"id": "init_close", "title": "Close discipline", "theme_id": "control"},
    ],
    "maturity_gates": [
        {"level": 0, "label": "Ad-hoc", "required_evidence_ids": []},
        {"level": 1, "label": "Emerging", "required_evidence_ids": ["q1", "q2"]},
        {"level": 2, "label": "Defined", "required_evidence_ids": ["q3", "q4"]},
        {"level": 3, "label": "Managed", "required_evidence_ids": ["q5"]},
        {"level": 4, "label": "Optimized", "required_evidence_ids": ["q6"]},
    ],
}

ALL_QUESTION_IDS = ["q1", "q2", "q3", "q4", "q5", "q6"]


@pytest.fixture
def raw_spec():
    """A fresh, mutable copy of the mini spec document."""
    return copy.deepcopy(MINI_SPEC)


@pytest.fixture
def spec(raw_spec):
    return adapt_spec(raw_spec)


@pytest.fixture
def all_true():
    return AnswerSheet.from_mapping({qid: True for qid in ALL_QUESTION_IDS})


def sheet(**overrides):
    """All-true answers with per-question overrides."""
    values = {qid: True for qid in ALL_QUESTION_IDS}
    values.update(overrides)
    return AnswerSheet.from_mapping(values)
