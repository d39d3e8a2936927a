# engine/maturity.py: Gate maturity and execution-score maturity.
"""Two maturity models, both pure functions of (spec, answers).

Gate model (legacy)
~~~~~~~~~~~~~~~~~~~
Gates are checked in ascending level order.  Level *n* is achieved only
if every required evidence id is strictly ``Answered(True)``; the walk
halts at the first failing gate, so level *n* can never be achieved when
level *n−1* failed.  Per-pillar gate results roll up by weakest link.

Execution-score model
~~~~~~~~~~~~~~~~~~~~~
``execution_score`` is the share of true answers among answered questions
(0–100).  Score bands map it to ``potential_level``.  A failed critical
question at level *k* caps ``actual_level`` at max(1, *k*−1): a high
aggregate score cannot paper over a missing hard control.
"""
from __future__ import annotations

import logging
from typing import Iterable

from engine.scoring import round_half_up
from schemas.answers import AnswerSheet, Answered
from schemas.domain import GateMaturity, MaturityResult
from schemas.taxonomy import (
    ALL_MATURITY_LEVELS,
    DEFAULT_SCORE_THRESHOLDS,
    LEVEL_NAMES,
    DiagnosticSpec,
    MaturityGate,
    Question,
)

_log = logging.getLogger(__name__)

MIN_LEVEL = min(ALL_MATURITY_LEVELS)
MAX_LEVEL = max(ALL_MATURITY_LEVELS)


# ── Gate model ────────────────────────────────────────────────────

def evaluate_gates(answers: AnswerSheet, gates: Iterable[MaturityGate]) -> GateMaturity:
    ordered = sorted(gates, key=lambda g: g.level)
    if not ordered:
        return {
            "achieved_level": 0,
            "achieved_label": "Unknown",
            "blocking_level": None,
            "blocking_evidence_ids": [],
        }

    achieved_level = 0
    achieved_label = ordered[0].label if ordered[0].level == 0 else LEVEL_NAMES[0]

    for gate in ordered:
        missing = [eid for eid in gate.required_evidence_ids if not answers.is_true(eid)]
        if missing:
            return {
                "achieved_level": achieved_level,
                "achieved_label": achieved_label,
                "blocking_level": gate.level,
                "blocking_evidence_ids": missing,
            }
        achieved_level = gate.level
        achieved_label = gate.label

    return {
        "achieved_level": achieved_level,
        "achieved_label": achieved_label,
        "blocking_level": None,
        "blocking_evidence_ids": [],
    }


def pillar_gates(spec: DiagnosticSpec, pillar_id: str) -> list[MaturityGate]:
    """The spec's gates with evidence restricted to one pillar's questions."""
    pillar_qids = {q.question_id for q in spec.questions_for_pillar(pillar_id)}
    return [
        MaturityGate(
            level=g.level,
            label=g.label,
            required_evidence_ids=tuple(e for e in g.required_evidence_ids if e in pillar_qids),
        )
        for g in spec.gates
    ]


def pillar_gate_maturity(spec: DiagnosticSpec, answers: AnswerSheet) -> dict[str, GateMaturity]:
    return {
        p.pillar_id: evaluate_gates(answers, pillar_gates(spec, p.pillar_id))
        for p in spec.pillars
    }


def rollup_weakest_link(pillar_results: dict[str, GateMaturity]) -> GateMaturity:
    """Overall gate maturity = the weakest pillar.

    Blocking evidence is the union (first-seen order) over every pillar
    sitting at the minimum level.
    """
    if not pillar_results:
        return {
            "achieved_level": 0,
            "achieved_label": "Unknown",
            "blocking_level": None,
            "blocking_evidence_ids": [],
        }

    weakest_level = min(r["achieved_level"] for r in pillar_results.values())
    weakest = [r for r in pillar_results.values() if r["achieved_level"] == weakest_level]

    blocking_ids: list[str] = []
    blocking_levels = []
    for r in weakest:
        if r["blocking_level"] is not None:
            blocking_levels.append(r["blocking_level"])
        for eid in r["blocking_evidence_ids"]:
            if eid not in blocking_ids:
                blocking_ids.append(eid)

    return {
        "achieved_level": weakest_level,
        "achieved_label": weakest[0]["achieved_label"],
        "blocking_level": min(blocking_levels) if blocking_levels else None,
        "blocking_evidence_ids": blocking_ids,
    }


# ── Execution-score model ─────────────────────────────────────────

def calculate_execution_score(spec: DiagnosticSpec, answers: AnswerSheet) -> float:
    """Percent of true answers over answered questions, 1 dp.

    ``NotApplicable`` and ``Unanswered`` are excluded from the
    denominator.  Zero answered questions → 0.0.
    """
    answered = [a for a in (answers.get(q.question_id) for q in spec.questions)
                if isinstance(a, Answered)]
    if not answered:
        return 0.0
    true_count = sum(1 for a in answered if a.value is True)
    return round_half_up(true_count / len(answered) * 100.0, 1)


def potential_level_for(score: float, thresholds: dict[int, float] | None = None) -> int:
    """Highest level whose band minimum the score reaches.  Floor is level 1."""
    bands = thresholds or DEFAULT_SCORE_THRESHOLDS
    level = MIN_LEVEL
    for lvl in sorted(bands):
        if score >= bands[lvl]:
            level = lvl
    return level


def failed_criticals(spec: DiagnosticSpec, answers: AnswerSheet) -> list[Question]:
    """Critical questions whose answer is not strictly true, in spec order."""
    return [q for q in spec.critical_questions() if not answers.is_true(q.question_id)]


def critical_cap(question: Question) -> int:
    return max(MIN_LEVEL, question.level - 1)


def _capped_reason(capped_by: list[str], actual_level: int, potential_level: int) -> str:
    noun = "question" if len(capped_by) == 1 else "questions"
    return (
        f"Execution score supports Level {potential_level}, but maturity is capped at "
        f"Level {actual_level} by failed critical {noun}: {', '.join(capped_by)}"
    )


def calculate_maturity(
    spec: DiagnosticSpec,
    answers: AnswerSheet,
    thresholds: dict[int, float] | None = None,
) -> MaturityResult:
    """Execution score → potential level → critical-capped actual level.

    Bands come from *thresholds*, else the spec's ``score_thresholds``,
    else the defaults.
    """
    execution_score = calculate_execution_score(spec, answers)
    potential = potential_level_for(execution_score, thresholds or spec.thresholds())

    failed = failed_criticals(spec, answers)
    cap = min((critical_cap(q) for q in failed), default=MAX_LEVEL)
    actual = min(potential, cap)

    capped = actual < potential
    capped_by = [q.question_id for q in failed if critical_cap(q) < potential] if capped else []
    if capped:
        _log.debug("Maturity capped at level %d (potential %d) by %s", actual, potential, capped_by)

    return {
        "execution_score": execution_score,
        "potential_level": potential,
        "actual_level": actual,
        "capped": capped,
        "capped_by": capped_by,
        "capped_reason": _capped_reason(capped_by, actual, potential) if capped else None,
    }
