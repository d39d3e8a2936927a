# engine/prioritization.py: P1 / P2 / P3 action ranking and initiative grouping.
"""Question-level actions ranked by maturity impact, then by value score.

Tiers (all computed from ``potential_level``, never ``actual_level``, so a
high-scoring but capped organisation still sees the actions that unlock it):

  P1  unlock    failed critical questions at levels ≤ potential
  P2  optimize  other failed questions at levels ≤ potential
  P3  next      failed questions at potential + 1

"Failed" means false or unanswered; N/A never produces an action.

Score = (impact² / complexity) × critical multiplier × importance
multiplier × context modifier, rounded to 1 dp.
"""
from __future__ import annotations

import logging

from engine.config import DEFAULT_CRITICAL_MULTIPLIER, DEFAULT_PAIN_POINT_BOOST
from engine.scoring import round_half_up
from schemas.answers import AnswerSheet, NotApplicable
from schemas.calibration import CalibrationParams, PlanningContextParams
from schemas.domain import InitiativeGrouping, MaturityResult, PrioritizedAction, PrioritizedInitiative
from schemas.taxonomy import DEFAULT_IMPORTANCE, DiagnosticSpec, Question

_log = logging.getLogger(__name__)

TIER_ORDER: dict[str, int] = {"P1": 0, "P2": 1, "P3": 2}

# Compile-time: tiers are exactly P1..P3
assert list(TIER_ORDER) == ["P1", "P2", "P3"], f"Unexpected tiers: {list(TIER_ORDER)}"

# ── Question text → imperative action text ────────────────────────
# First matching prefix wins.
_ACTION_PREFIXES: tuple[tuple[str, str], ...] = (
    ("Does the company ", "Implement: "),
    ("Does the ", "Implement: "),
    ("Does ", "Implement: "),
    ("Do ", "Implement: "),
    ("Is there ", "Establish: "),
    ("Is the ", "Ensure: "),
    ("Are ", "Ensure: "),
    ("Can ", "Enable: "),
    ("Has ", "Complete: "),
)


def generate_action_text(question: Question) -> str:
    if question.expert_action_title:
        return question.expert_action_title
    text = question.text.removesuffix("?")
    for prefix, verb in _ACTION_PREFIXES:
        if text.startswith(prefix):
            return verb + text[len(prefix):]
    return "Address: " + text


def estimate_effort(question: Question) -> str:
    if question.complexity >= 4:
        return "high"
    if question.complexity >= 2:
        return "medium"
    return "low"


# ── Score components ──────────────────────────────────────────────

def importance_for(
    spec: DiagnosticSpec,
    objective_id: str | None,
    calibration: CalibrationParams | None,
) -> int:
    if objective_id and calibration and objective_id in calibration.importance_map:
        return calibration.importance_map[objective_id]
    objective = spec.objective_index.get(objective_id) if objective_id else None
    return objective.default_importance if objective else DEFAULT_IMPORTANCE


def importance_multiplier(importance: int) -> float:
    """1 → 0.5, 3 → 1.0, 5 → 1.5."""
    return 0.5 + 0.25 * (importance - 1)


def context_modifier(
    spec: DiagnosticSpec,
    objective_id: str | None,
    context: PlanningContextParams | None,
    boost: float = DEFAULT_PAIN_POINT_BOOST,
) -> float:
    if context is None or not context.pain_points or not objective_id:
        return 1.0
    objective = spec.objective_index.get(objective_id)
    if objective is None:
        return 1.0
    if set(objective.pain_point_tags) & set(context.pain_points):
        return boost
    return 1.0


def calculate_score(
    question: Question,
    importance_mult: float = 1.0,
    context_mod: float = 1.0,
    critical_multiplier: float = DEFAULT_CRITICAL_MULTIPLIER,
) -> float:
    score = question.impact ** 2 / question.complexity
    if question.is_critical:
        score *= critical_multiplier
    return round_half_up(score * importance_mult * context_mod, 1)


# ── Prioritization ────────────────────────────────────────────────

def _is_failed(answers: AnswerSheet, question_id: str) -> bool:
    answer = answers.get(question_id)
    return not isinstance(answer, NotApplicable) and not answers.is_true(question_id)


def _impact_text(tier: str, level: int, actual_level: int) -> str:
    if tier == "P1":
        return "Unlocks next maturity level"
    if tier == "P3":
        return "Prepares for next level"
    return "Strengthens current level" if level <= actual_level else "Advances toward potential"


def prioritize_actions(
    spec: DiagnosticSpec,
    answers: AnswerSheet,
    maturity: MaturityResult,
    calibration: CalibrationParams | None = None,
    context: PlanningContextParams | None = None,
    *,
    critical_multiplier: float = DEFAULT_CRITICAL_MULTIPLIER,
    pain_point_boost: float = DEFAULT_PAIN_POINT_BOOST,
) -> list[PrioritizedAction]:
    potential = maturity["potential_level"]
    actual = maturity["actual_level"]
    next_level = potential + 1

    actions: list[PrioritizedAction] = []
    for q in spec.questions:
        if not _is_failed(answers, q.question_id):
            continue

        if q.level <= potential:
            tier = "P1" if q.is_critical else "P2"
        elif q.level == next_level:
            tier = "P3"
        else:
            continue

        objective = spec.objective_for(q.question_id)
        objective_id = objective.objective_id if objective else None
        mult = importance_multiplier(importance_for(spec, objective_id, calibration))
        mod = context_modifier(spec, objective_id, context, pain_point_boost)
        action_text = generate_action_text(q)

        actions.append({
            "priority": tier,
            "question_id": q.question_id,
            "question_text": q.text,
            "action_title": q.expert_action_title or action_text,
            "action_text": action_text,
            "action_type": q.expert_action_type,
            "impact": _impact_text(tier, q.level, actual),
            "effort": estimate_effort(q),
            "level": q.level,
            "score": calculate_score(q, mult, mod, critical_multiplier),
            "is_critical": q.is_critical,
            "objective_id": objective_id,
            "initiative_id": q.initiative_id,
        })

    return sorted(actions, key=lambda a: (TIER_ORDER[a["priority"]], -a["score"]))


def group_actions_by_initiative(
    actions: list[PrioritizedAction],
    spec: DiagnosticSpec,
) -> InitiativeGrouping:
    """Group actions under their spec initiative.

    Initiative priority is the best tier among its actions; its score is
    the sum of action scores.  Actions without an initiative, or whose
    initiative is not in the spec, land in ``ungrouped``.
    """
    grouped: dict[str, list[PrioritizedAction]] = {}
    ungrouped: list[PrioritizedAction] = []

    for action in actions:
        iid = action["initiative_id"]
        if iid and iid in spec.initiative_index:
            grouped.setdefault(iid, []).append(action)
            continue
        if iid:
            _log.warning("Action for %s references unknown initiative %s; ungrouped",
                         action["question_id"], iid)
        ungrouped.append(action)

    initiatives: list[PrioritizedInitiative] = []
    for iid, members in grouped.items():
        initiative = spec.initiative_index[iid]
        members = sorted(members, key=lambda a: -a["score"])
        initiatives.append({
            "initiative_id": iid,
            "initiative_title": initiative.title,
            "initiative_description": initiative.description,
            "theme_id": initiative.theme_id,
            "priority": min((a["priority"] for a in members), key=TIER_ORDER.__getitem__),
            "total_score": round_half_up(sum(a["score"] for a in members), 1),
            "actions": members,
        })

    initiatives.sort(key=lambda i: (TIER_ORDER[i["priority"]], -i["total_score"]))
    return {"initiatives": initiatives, "ungrouped": ungrouped}
