# engine/action_plan.py: Evidence-triggered and objective-based actions.
"""Two action derivations over the same spec action definitions.

``derive_actions`` (legacy)
    Triggering evidence is collected in a fixed order (critical risks,
    then overall gate blockers, then per-pillar gate blockers).  An
    evidence id keeps the first trigger type recorded for it.  Each
    evidence question with a ``trigger_action_id`` hydrates one action.

``derive_actions_from_objectives``
    One action per objective that has an ``action_id`` and at least one
    question not strictly true.  HIGH when the objective holds a
    critical-risk or gate-blocking question, MEDIUM otherwise.

Missing action definitions are logged and skipped; they never abort
the report.
"""
from __future__ import annotations

import logging

from schemas.answers import AnswerSheet
from schemas.domain import ActionPlanItem, CriticalRisk, DerivedAction, GateMaturity
from schemas.taxonomy import DiagnosticSpec

_log = logging.getLogger(__name__)

PRIORITY_ORDER: dict[str, int] = {"critical": 0, "high": 1, "medium": 2}
DERIVED_PRIORITY_ORDER: dict[str, int] = {"HIGH": 0, "MEDIUM": 1}


# ── Legacy: evidence → trigger_action_id ──────────────────────────

def _collect_triggers(
    spec: DiagnosticSpec,
    critical_risks: list[CriticalRisk],
    gate_maturity: GateMaturity,
    pillar_maturity: dict[str, GateMaturity],
) -> dict[str, tuple[str, str | None]]:
    """Ordered ``evidence_id → (trigger_type, pillar_id)``.  First type wins."""
    triggers: dict[str, tuple[str, str | None]] = {}

    for risk in critical_risks:
        triggers.setdefault(risk["question_id"], ("critical_risk", risk["pillar_id"]))

    for eid in gate_maturity["blocking_evidence_ids"]:
        q = spec.question(eid)
        triggers.setdefault(eid, ("maturity_blocker", q.pillar_id if q else None))

    for pillar_id, result in pillar_maturity.items():
        for eid in result["blocking_evidence_ids"]:
            triggers.setdefault(eid, ("maturity_blocker", pillar_id))

    return triggers


def derive_actions(
    spec: DiagnosticSpec,
    critical_risks: list[CriticalRisk],
    gate_maturity: GateMaturity,
    pillar_maturity: dict[str, GateMaturity] | None = None,
) -> list[ActionPlanItem]:
    triggers = _collect_triggers(spec, critical_risks, gate_maturity, pillar_maturity or {})

    actions: list[ActionPlanItem] = []
    for eid, (trigger_type, pillar_id) in triggers.items():
        q = spec.question(eid)
        if q is None or not q.trigger_action_id:
            continue
        action = spec.action_index.get(q.trigger_action_id)
        if action is None:
            _log.warning("Question %s triggers unknown action %s; skipped", eid, q.trigger_action_id)
            continue

        priority = action.priority
        if trigger_type == "critical_risk" and priority == "medium":
            priority = "high"

        actions.append({
            "id": action.action_id,
            "title": action.title,
            "description": action.description,
            "rationale": action.rationale,
            "priority": priority,
            "trigger_type": trigger_type,
            "evidence_id": eid,
            "pillar_id": pillar_id,
        })

    return sorted(actions, key=lambda a: PRIORITY_ORDER[a["priority"]])


# ── Objective-based ───────────────────────────────────────────────

def derive_actions_from_objectives(
    spec: DiagnosticSpec,
    answers: AnswerSheet,
    critical_risks: list[CriticalRisk],
    gate_maturity: GateMaturity,
) -> list[DerivedAction]:
    risk_ids = {r["question_id"] for r in critical_risks}
    blocking_ids = set(gate_maturity["blocking_evidence_ids"])

    actions: list[DerivedAction] = []
    seen: set[str] = set()

    for objective in spec.objectives:
        if not objective.action_id or objective.objective_id in seen:
            continue

        qids = spec.objective_questions.get(objective.objective_id, ())
        if all(answers.is_true(qid) for qid in qids):
            continue
        seen.add(objective.objective_id)

        action = spec.action_index.get(objective.action_id)
        if action is None:
            _log.warning("Objective %s references unknown action %s; skipped",
                         objective.objective_id, objective.action_id)
            continue

        if any(qid in risk_ids for qid in qids):
            priority, reason = "HIGH", "critical_risk"
        elif any(qid in blocking_ids for qid in qids):
            priority, reason = "HIGH", "maturity_blocker"
        else:
            priority, reason = "MEDIUM", "objective_incomplete"

        actions.append({
            "id": action.action_id,
            "objective_id": objective.objective_id,
            "objective_name": objective.name,
            "title": action.title,
            "description": action.description,
            "rationale": action.rationale,
            "pillar_id": objective.pillar_id,
            "level": objective.level,
            "derived_priority": priority,
            "trigger_reason": reason,
        })

    return sorted(actions, key=lambda a: (DERIVED_PRIORITY_ORDER[a["derived_priority"]], a["level"]))
