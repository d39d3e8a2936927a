# engine/scoring.py
"""Deterministic answer scoring: every answer variant has an explicit score.

Answers are converted into normalized score rows (0.0–1.0) before any
aggregation.  The conversion table below covers every variant of the
answer union; an unrecognized variant refuses to score (compile-time
assert).  Every row that reaches aggregation passes
``assert_normalized_score()`` first.
"""
from __future__ import annotations

import math
from typing import Any

from schemas.answers import AnswerSheet, Answered, NotApplicable, Unanswered
from schemas.domain import ScoreRow
from schemas.taxonomy import DiagnosticSpec


class MalformedScoreError(ValueError):
    """Raised when a score row is not a finite number in 0.0–1.0."""


# ── Variant → score ───────────────────────────────────────────────
# None means "no row": the question drops out of numerator AND denominator.
# Unanswered scores 0.0; silence is not evidence.
ANSWER_SCORE: dict[type, float | None] = {
    NotApplicable: None,
    Unanswered:    0.0,
}

# Compile-time: every non-Answered variant has a score
assert set(ANSWER_SCORE) | {Answered} == {Answered, NotApplicable, Unanswered}, \
    f"ANSWER_SCORE missing: {({NotApplicable, Unanswered}) - set(ANSWER_SCORE)}"


def assert_normalized_score(question_id: str, score: Any) -> float:
    """Return *score* as a float or raise ``MalformedScoreError``.

    Booleans are rejected even though they are ints: a score row must be
    an explicit number, not an answer value that skipped conversion.
    """
    if isinstance(score, bool) or not isinstance(score, (int, float)) or math.isnan(score):
        raise MalformedScoreError(f"Score for {question_id} is not a valid number: {score!r}")
    if score < 0.0 or score > 1.0:
        raise MalformedScoreError(
            f"Score for {question_id} must be normalized 0.0–1.0, got {score}"
        )
    return float(score)


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with ties going up (2.25 -> 2.3), never to the even digit."""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def score_answer(answer: Any) -> float | None:
    if isinstance(answer, Answered):
        return 1.0 if answer.value else 0.0
    return ANSWER_SCORE[type(answer)]


def score_answers(spec: DiagnosticSpec, answers: AnswerSheet) -> list[ScoreRow]:
    """Convert the answer sheet into normalized score rows in spec order.

    ``Answered(True)`` → 1.0, ``Answered(False)`` → 0.0, ``Unanswered`` →
    0.0, ``NotApplicable`` → no row.
    """
    rows: list[ScoreRow] = []
    for q in spec.questions:
        score = score_answer(answers.get(q.question_id))
        if score is None:
            continue
        rows.append({"question_id": q.question_id, "score": score})
    return rows
