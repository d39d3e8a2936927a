# engine/report_builder.py: One call from (spec, answers) to the report DTO.
"""Report assembler.

Runs every engine in dependency order and returns a single
``DiagnosticReport``.  The report is plain JSON and carries no
wall-clock fields: identical inputs produce byte-identical
``json.dumps(report, sort_keys=True)`` output.

The resolved inputs are echoed under ``inputs`` so a client can
recompute any section without calling back.
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Iterable

from engine.action_plan import derive_actions, derive_actions_from_objectives
from engine.capacity import plan_capacity
from engine.config import EngineSettings
from engine.critical_risks import derive_critical_risks, risks_by_pillar
from engine.maturity import (
    calculate_maturity,
    pillar_gate_maturity,
    rollup_weakest_link,
)
from engine.maturity_footprint import build_maturity_footprint
from engine.objective_scoring import calculate_objective_scores
from engine.prioritization import group_actions_by_initiative, prioritize_actions
from engine.rollup import aggregate_results
from engine.scoring import score_answers
from schemas.answers import AnswerSheet, to_raw
from schemas.calibration import CalibrationParams, PlanningContextParams
from schemas.domain import DiagnosticReport, GateMaturity, LegacyMaturity, PillarReport
from schemas.taxonomy import DiagnosticSpec

_log = logging.getLogger(__name__)


def resolve_answers(spec: DiagnosticSpec, answers: AnswerSheet) -> list[dict[str, Any]]:
    """One ``{question_id, value}`` row per spec question, in spec order."""
    return [
        {"question_id": q.question_id, "value": to_raw(answers.get(q.question_id))}
        for q in spec.questions
    ]


def derive_run_id(spec: DiagnosticSpec, resolved: list[dict[str, Any]]) -> str:
    """Content hash of spec version + resolved answers."""
    payload = json.dumps({"spec": spec.version, "answers": resolved}, sort_keys=True)
    return "run-" + hashlib.sha256(payload.encode("utf-8")).hexdigest()[:12]


def _legacy_maturity(spec: DiagnosticSpec, answers: AnswerSheet, overall: GateMaturity) -> LegacyMaturity:
    gates = [
        {
            "level": g.level,
            "label": g.label,
            "required_evidence_ids": list(g.required_evidence_ids),
            "passed": all(answers.is_true(eid) for eid in g.required_evidence_ids),
        }
        for g in sorted(spec.gates, key=lambda g: g.level)
    ]
    return {**overall, "gates": gates}


def build_report(
    spec: DiagnosticSpec,
    inputs: AnswerSheet | Iterable[dict[str, Any]],
    *,
    run_id: str | None = None,
    calibration: CalibrationParams | None = None,
    context: PlanningContextParams | None = None,
    settings: EngineSettings | None = None,
) -> DiagnosticReport:
    """Evaluate *inputs* against *spec*.

    *inputs* is an ``AnswerSheet`` or raw ``[{question_id, value}]`` rows.
    ``capacity_plan`` is ``None`` unless a planning *context* is given.
    Raises ``MalformedScoreError`` if a normalized score is out of range.
    """
    settings = settings or EngineSettings()
    answers = inputs if isinstance(inputs, AnswerSheet) else AnswerSheet.from_inputs(inputs)

    unknown = [qid for qid in answers.question_ids() if spec.question(qid) is None]
    if unknown:
        _log.warning("Ignoring %d answer(s) for unknown question ids: %s",
                     len(unknown), ", ".join(unknown))

    resolved = resolve_answers(spec, answers)
    run_id = run_id or derive_run_id(spec, resolved)

    # ── Scores ────────────────────────────────────────────────────
    aggregate = aggregate_results(spec, score_answers(spec, answers))

    # ── Maturity ──────────────────────────────────────────────────
    per_pillar = pillar_gate_maturity(spec, answers)
    gate_maturity = rollup_weakest_link(per_pillar)
    thresholds = spec.thresholds() if spec.score_thresholds else settings.score_thresholds
    maturity_v2 = calculate_maturity(spec, answers, thresholds)

    # ── Risks and objectives ──────────────────────────────────────
    critical_risks = derive_critical_risks(spec, answers)
    grouped_risks = risks_by_pillar(critical_risks)
    objective_scores = calculate_objective_scores(spec, answers)

    # ── Actions ───────────────────────────────────────────────────
    actions = derive_actions(spec, critical_risks, gate_maturity, per_pillar)
    derived = derive_actions_from_objectives(spec, answers, critical_risks, gate_maturity)
    prioritized = prioritize_actions(
        spec, answers, maturity_v2, calibration, context,
        critical_multiplier=settings.critical_multiplier,
        pain_point_boost=settings.pain_point_boost,
    )
    initiatives = group_actions_by_initiative(prioritized, spec)
    capacity = (
        plan_capacity(initiatives["initiatives"], context, calibration,
                      current_level=maturity_v2["actual_level"])
        if context is not None else None
    )

    # ── Pillars ───────────────────────────────────────────────────
    pillar_scores = {p["pillar_id"]: p for p in aggregate["pillars"]}
    pillars: list[PillarReport] = []
    for pillar in spec.pillars:
        row = pillar_scores[pillar.pillar_id]
        pillars.append({
            "pillar_id": pillar.pillar_id,
            "name": pillar.name,
            "score": row["score"],
            "scored_questions": row["scored_questions"],
            "total_questions": len(spec.questions_for_pillar(pillar.pillar_id)),
            "gate_maturity": per_pillar[pillar.pillar_id],
            "critical_risks": grouped_risks.get(pillar.pillar_id, []),
        })

    _log.info("Report %s: overall=%s actual_level=%d risks=%d actions=%d",
              run_id, aggregate["overall_score"], maturity_v2["actual_level"],
              len(critical_risks), len(prioritized))

    return {
        "run_id": run_id,
        "spec_version": spec.version,
        "overall_score": aggregate["overall_score"],
        "pillars": pillars,
        "maturity": _legacy_maturity(spec, answers, gate_maturity),
        "maturity_v2": maturity_v2,
        "objective_scores": objective_scores,
        "critical_risks": critical_risks,
        "actions": actions,
        "derived_actions": derived,
        "prioritized_actions": prioritized,
        "initiatives": initiatives,
        "capacity_plan": capacity,
        "maturity_footprint": build_maturity_footprint(spec, answers, settings.focus_limit),
        "inputs": {
            "answers": resolved,
            "calibration": calibration.model_dump() if calibration else None,
            "context": context.model_dump() if context else None,
        },
    }
