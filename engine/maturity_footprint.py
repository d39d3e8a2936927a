# engine/maturity_footprint.py: Per-practice evidence map and "focus next".
"""Maturity footprint: which practices are proven at each level, and the
three gaps most worth fixing next.

Evidence state per practice (over its *answered* questions):
  - proven      100 % true
  - partial     ≥ 50 % true
  - not_proven  < 50 % true, or nothing answered

``has_critical`` is evaluated here from the spec's question flags on
every call; criticality is never stored on the practice.

Flat specs have no practice layer.  For those, each objective stands in
as one practice covering its resolved questions.
"""
from __future__ import annotations

from schemas.answers import AnswerSheet, Answered
from schemas.domain import FocusItem, LevelSummary, MaturityFootprint, PracticeWithEvidence
from schemas.taxonomy import ALL_MATURITY_LEVELS, DiagnosticSpec, Practice

# ══════════════════════════════════════════════════════════════════
# Constants
# ══════════════════════════════════════════════════════════════════

GAP_SCORE: dict[str, float] = {
    "proven": 0.0,
    "partial": 0.5,
    "not_proven": 1.0,
}

PARTIAL_COVERAGE = 0.5
CRITICAL_BOOST = 2
FOUNDATION_MAX_LEVEL = 2
DEFAULT_FOCUS_LIMIT = 3


# ══════════════════════════════════════════════════════════════════
# Per-practice evaluation
# ══════════════════════════════════════════════════════════════════

def compute_evidence_state(practice: Practice, answers: AnswerSheet) -> str:
    applicable = [a for a in (answers.get(qid) for qid in practice.question_ids)
                  if isinstance(a, Answered)]
    if not applicable:
        return "not_proven"
    coverage = sum(1 for a in applicable if a.value is True) / len(applicable)
    if coverage >= 1.0:
        return "proven"
    if coverage >= PARTIAL_COVERAGE:
        return "partial"
    return "not_proven"


def practice_has_critical(practice: Practice, spec: DiagnosticSpec) -> bool:
    for qid in practice.question_ids:
        q = spec.question(qid)
        if q is not None and q.is_critical:
            return True
    return False


def footprint_practices(spec: DiagnosticSpec) -> list[Practice]:
    """The spec's practices, or one stand-in practice per objective."""
    if spec.practices:
        return list(spec.practices)
    return [
        Practice(
            practice_id=o.objective_id,
            objective_id=o.objective_id,
            title=o.name,
            maturity_level=o.level,
            question_ids=spec.objective_questions.get(o.objective_id, ()),
            description=o.description,
            theme_id=o.theme_id,
        )
        for o in spec.objectives
        if spec.objective_questions.get(o.objective_id)
    ]


def build_practice_with_evidence(
    practice: Practice,
    spec: DiagnosticSpec,
    answers: AnswerSheet,
) -> PracticeWithEvidence:
    state = compute_evidence_state(practice, answers)
    return {
        "id": practice.practice_id,
        "title": practice.title,
        "description": practice.description,
        "maturity_level": practice.maturity_level,
        "theme_id": practice.theme_id,
        "evidence_state": state,
        "has_critical": practice_has_critical(practice, spec),
        "gap_score": GAP_SCORE[state],
    }


# ══════════════════════════════════════════════════════════════════
# Focus next
# ══════════════════════════════════════════════════════════════════

def _focus_reason(p: PracticeWithEvidence) -> str:
    if p["has_critical"]:
        return "critical_gap"
    if p["maturity_level"] <= FOUNDATION_MAX_LEVEL:
        return "foundation_gap"
    return "optimization_gap"


def compute_focus_next(
    practices: list[PracticeWithEvidence],
    limit: int = DEFAULT_FOCUS_LIMIT,
) -> list[FocusItem]:
    """Top *limit* non-proven practices, highest priority first.

    priority = (5 − level) × gap_score × (2 if has_critical else 1).
    Ties keep input order.
    """
    scored: list[FocusItem] = []
    for p in practices:
        if p["evidence_state"] == "proven":
            continue
        boost = CRITICAL_BOOST if p["has_critical"] else 1
        scored.append({
            "practice_id": p["id"],
            "practice_title": p["title"],
            "level": p["maturity_level"],
            "priority_score": (5 - p["maturity_level"]) * p["gap_score"] * boost,
            "reason": _focus_reason(p),
        })
    ranked = sorted(scored, key=lambda item: item["priority_score"], reverse=True)
    return ranked[:limit]


# ══════════════════════════════════════════════════════════════════
# Summary text: ordered rules, first match wins
# ══════════════════════════════════════════════════════════════════

def summary_text(levels: list[LevelSummary]) -> str:
    by_level = {lv["level"]: lv for lv in levels}

    def complete(n: int) -> bool:
        lv = by_level.get(n)
        return lv is not None and lv["proven_count"] == lv["total_count"]

    def has_gaps(n: int) -> bool:
        lv = by_level.get(n)
        return lv is not None and lv["proven_count"] < lv["total_count"]

    l3 = by_level.get(3)
    l3_progress = l3 is not None and l3["proven_count"] > 0

    if l3_progress and has_gaps(2):
        return ("Your footprint is uneven: L3 planning capabilities exist, "
                "but L2 reliability gaps block scale.")
    if all(complete(n) for n in ALL_MATURITY_LEVELS):
        return "Exceptional maturity across all levels. Focus on continuous improvement."
    if complete(1) and complete(2) and not complete(3):
        return "Strong foundation. Focus on L3 capabilities to advance to Managed level."
    if complete(1) and not complete(2):
        return "Foundation established. Build L2 discipline to unlock consistent execution."
    if has_gaps(1):
        return "Foundation gaps remain. Address L1 basics before advancing to higher levels."
    return "Mixed maturity profile. Focus on critical gaps to unlock the next level."


# ══════════════════════════════════════════════════════════════════
# Builder
# ══════════════════════════════════════════════════════════════════

def build_maturity_footprint(
    spec: DiagnosticSpec,
    answers: AnswerSheet,
    focus_limit: int = DEFAULT_FOCUS_LIMIT,
) -> MaturityFootprint:
    practices = [build_practice_with_evidence(p, spec, answers) for p in footprint_practices(spec)]

    levels: list[LevelSummary] = []
    for level in ALL_MATURITY_LEVELS:
        bucket = [p for p in practices if p["maturity_level"] == level]
        levels.append({
            "level": level,
            "name": spec.level_name(level),
            "practices": bucket,
            "proven_count": sum(1 for p in bucket if p["evidence_state"] == "proven"),
            "partial_count": sum(1 for p in bucket if p["evidence_state"] == "partial"),
            "total_count": len(bucket),
        })

    return {
        "levels": levels,
        "focus_next": compute_focus_next(practices, focus_limit),
        "summary_text": summary_text(levels),
    }
