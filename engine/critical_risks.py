# engine/critical_risks.py: "Silence is a risk."
"""One CRITICAL record per critical question that is not strictly true.

``False``, ``NotApplicable``, ``Unanswered`` and an absent answer all
produce the same record.  There is no not-applicable escape hatch for a
critical control, and no value coercion.  Non-critical questions never
produce a record regardless of their answer.

Records come out in spec order; consumers sort them as they need.
"""
from __future__ import annotations

import logging

from schemas.answers import AnswerSheet
from schemas.domain import CriticalRisk
from schemas.taxonomy import DiagnosticSpec

_log = logging.getLogger(__name__)

SEVERITY = "CRITICAL"


def derive_critical_risks(spec: DiagnosticSpec, answers: AnswerSheet) -> list[CriticalRisk]:
    risks: list[CriticalRisk] = []
    for q in spec.critical_questions():
        if answers.is_true(q.question_id):
            continue
        pillar = spec.pillar_index.get(q.pillar_id)
        risks.append({
            "question_id": q.question_id,
            "question_text": q.text,
            "pillar_id": q.pillar_id,
            "pillar_name": pillar.name if pillar else q.pillar_id,
            "level": q.level,
            "severity": SEVERITY,
        })
    _log.debug("%d critical risk(s) of %d critical question(s)", len(risks), len(spec.critical_questions()))
    return risks


def risks_by_pillar(risks: list[CriticalRisk]) -> dict[str, list[CriticalRisk]]:
    out: dict[str, list[CriticalRisk]] = {}
    for r in risks:
        out.setdefault(r["pillar_id"], []).append(r)
    return out
