# engine/objective_scoring.py: Objective traffic lights with critical override.
"""Per-objective completion score and green / yellow / red status.

Base status comes from the objective's own thresholds (default green ≥ 80,
yellow ≥ 50).  An objective holding a failed critical question can never
be green: a base green is downgraded to yellow and flagged
``overridden``.  A critical failure only ever pushes status down.

A critical question answered "N/A" is excluded from the score like any
other N/A, but it is still a failed critical.
"""
from __future__ import annotations

from engine.scoring import round_half_up
from schemas.answers import AnswerSheet, Answered, NotApplicable
from schemas.domain import ObjectiveScore
from schemas.taxonomy import DiagnosticSpec, Objective


def traffic_light(score: int, objective: Objective) -> str:
    if score >= objective.green_threshold:
        return "green"
    if score >= objective.yellow_threshold:
        return "yellow"
    return "red"


def override_reason(score: int) -> str:
    return (
        f"Score ({score}%) indicates strong execution, but status is "
        f"downgraded due to critical failure"
    )


def score_objective(spec: DiagnosticSpec, objective: Objective, answers: AnswerSheet) -> ObjectiveScore:
    passed = 0
    total = 0
    failed: list[str] = []

    for q in spec.questions_for_objective(objective.objective_id):
        answer = answers.get(q.question_id)
        is_true = isinstance(answer, Answered) and answer.value is True
        if q.is_critical and not is_true:
            failed.append(q.question_id)
        if isinstance(answer, NotApplicable):
            continue
        total += 1
        if is_true:
            passed += 1

    score = int(round_half_up(passed / total * 100)) if total else 0
    status = traffic_light(score, objective)
    overridden = False
    reason = None
    if failed and status == "green":
        status = "yellow"
        overridden = True
        reason = override_reason(score)

    return {
        "objective_id": objective.objective_id,
        "name": objective.name,
        "pillar_id": objective.pillar_id,
        "level": objective.level,
        "score": score,
        "status": status,
        "overridden": overridden,
        "override_reason": reason,
        "questions_total": total,
        "questions_passed": passed,
        "failed_criticals": failed,
    }


def calculate_objective_scores(spec: DiagnosticSpec, answers: AnswerSheet) -> list[ObjectiveScore]:
    """Score every objective in spec order."""
    return [score_objective(spec, o, answers) for o in spec.objectives]
