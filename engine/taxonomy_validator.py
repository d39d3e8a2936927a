# engine/taxonomy_validator.py: Fail-fast spec enforcement.
"""Spec Integrity: every entity that enters the diagnostic MUST be valid.

Every question, objective, practice, gate and action definition is
checked against the canonical taxonomy before a ``DiagnosticSpec`` is
built.  If a field is missing, has an invalid value, or points at an
entity that does not exist, the spec refuses to load and nothing is
evaluated against it.

This protects maturity math.

Dangling *action* and *initiative* references are the one exception:
engines skip them with a warning at evaluation time, so the validator
only logs them.

Usage
~~~~~
    from engine.taxonomy_validator import validate_and_build_spec, SpecViolation

    spec = validate_and_build_spec(canonical, variant="structured")
    # Returns DiagnosticSpec or raises SpecViolation

Wire-in
~~~~~~~
Called by ``engine.adapter.adapt_spec()`` after the raw pack has been
normalized into the canonical shape.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from schemas.taxonomy import (
    ALL_ACTION_PRIORITIES,
    ALL_EXPERT_ACTION_TYPES,
    ALL_MATURITY_LEVELS,
    ActionDefinition,
    DiagnosticSpec,
    Initiative,
    MaturityGate,
    Objective,
    Pillar,
    Practice,
    Question,
)

_log = logging.getLogger(__name__)


# ── Exception ─────────────────────────────────────────────────────

class SpecViolation(Exception):
    """Raised when a spec pack has one or more invalid entities.

    Contains a structured list of violations so callers can format them
    however they like (CLI table, JSON report, etc.).
    """

    def __init__(self, violations: list[dict[str, str]]) -> None:
        self.violations = violations
        lines = [f"  ✗ [{v['entity_id']}] {v['field']}: {v['detail']}" for v in violations]
        msg = (
            f"{len(violations)} spec violation(s); fix before evaluating:\n"
            + "\n".join(lines)
        )
        super().__init__(msg)


REQUIRED_QUESTION_FIELDS: tuple[str, ...] = ("id", "pillar_id", "text")
REQUIRED_OBJECTIVE_FIELDS: tuple[str, ...] = ("id", "pillar_id", "name")


class _Collector:
    def __init__(self) -> None:
        self.violations: list[dict[str, str]] = []

    def fail(self, entity_id: str, field: str, detail: str) -> None:
        self.violations.append({
            "entity_id": entity_id,
            "field": field,
            "detail": detail,
        })


def _is_scale(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5


def _check_duplicates(kind: str, items: list[dict[str, Any]], out: _Collector) -> None:
    counts = Counter(item.get("id") for item in items)
    for entity_id, n in counts.items():
        if entity_id and n > 1:
            out.fail(entity_id, "id", f"Duplicate {kind} id ({n} occurrences)")


# ── Single question validation ────────────────────────────────────

def validate_question(raw: dict[str, Any]) -> list[dict[str, str]]:
    """Validate a single canonical question dict.

    Returns a (possibly empty) list of violation dicts:
        [{"entity_id": "...", "field": "...", "detail": "..."}]
    """
    out = _Collector()
    qid = raw.get("id") or "?"

    # ── 1.  Required field presence ───────────────────────────────
    for field in REQUIRED_QUESTION_FIELDS:
        val = raw.get(field)
        if val is None or (isinstance(val, str) and val.strip() == ""):
            out.fail(qid, field, "Missing or empty")

    # ── 2.  Level / flags / ratings ───────────────────────────────
    level = raw.get("level")
    if isinstance(level, bool) or level not in ALL_MATURITY_LEVELS:
        out.fail(qid, "level", f"{level!r} not in {list(ALL_MATURITY_LEVELS)}")

    if not isinstance(raw.get("is_critical", False), bool):
        out.fail(qid, "is_critical", f"{raw.get('is_critical')!r} is not a boolean")

    for field in ("impact", "complexity"):
        if field in raw and not _is_scale(raw[field]):
            out.fail(qid, field, f"{raw[field]!r} is not an integer 1..5")

    weight = raw.get("weight", 1.0)
    if isinstance(weight, bool) or not isinstance(weight, (int, float)) or weight < 0:
        out.fail(qid, "weight", f"{weight!r} is not a non-negative number")

    # ── 3.  Expert action type ────────────────────────────────────
    expert = raw.get("expert_action") or {}
    etype = expert.get("type")
    if etype is not None and etype not in ALL_EXPERT_ACTION_TYPES:
        out.fail(qid, "expert_action.type", f"'{etype}' not in {list(ALL_EXPERT_ACTION_TYPES)}")

    return out.violations


# ── Pack-level validation ─────────────────────────────────────────

def _validate_cross_references(canonical: dict[str, Any], out: _Collector) -> None:
    pillar_ids = {p.get("id") for p in canonical["pillars"]}
    question_ids = {q.get("id") for q in canonical["questions"]}
    objective_ids = {o.get("id") for o in canonical["objectives"]}
    practice_ids = {p.get("id") for p in canonical["practices"]}
    action_ids = {a.get("id") for a in canonical["actions"]}
    initiative_ids = {i.get("id") for i in canonical["initiatives"]}

    for q in canonical["questions"]:
        qid = q.get("id") or "?"
        if q.get("pillar_id") and q["pillar_id"] not in pillar_ids:
            out.fail(qid, "pillar_id", f"'{q['pillar_id']}' is not a defined pillar")
        if q.get("objective_id") and q["objective_id"] not in objective_ids:
            out.fail(qid, "objective_id", f"'{q['objective_id']}' is not a defined objective")
        if q.get("practice_id") and q["practice_id"] not in practice_ids:
            out.fail(qid, "practice_id", f"'{q['practice_id']}' is not a defined practice")
        if q.get("trigger_action_id") and q["trigger_action_id"] not in action_ids:
            _log.warning("Question %s: trigger_action_id %s has no action definition",
                         qid, q["trigger_action_id"])
        if q.get("initiative_id") and q["initiative_id"] not in initiative_ids:
            _log.warning("Question %s: initiative_id %s has no initiative definition",
                         qid, q["initiative_id"])

    for o in canonical["objectives"]:
        oid = o.get("id") or "?"
        if o.get("pillar_id") and o["pillar_id"] not in pillar_ids:
            out.fail(oid, "pillar_id", f"'{o['pillar_id']}' is not a defined pillar")
        if o.get("action_id") and o["action_id"] not in action_ids:
            _log.warning("Objective %s: action_id %s has no action definition",
                         oid, o["action_id"])

    for p in canonical["practices"]:
        pid = p.get("id") or "?"
        if p.get("objective_id") not in objective_ids:
            out.fail(pid, "objective_id", f"'{p.get('objective_id')}' is not a defined objective")
        question_refs = p.get("question_ids")
        if not isinstance(question_refs, list) or not question_refs:
            out.fail(pid, "question_ids", "Must be a non-empty list of question ids")
            continue
        for ref in question_refs:
            if ref not in question_ids:
                out.fail(pid, "question_ids", f"'{ref}' is not a defined question")

    for i in canonical["initiatives"]:
        iid = i.get("id") or "?"
        if i.get("objective_id") and i["objective_id"] not in objective_ids:
            out.fail(iid, "objective_id", f"'{i['objective_id']}' is not a defined objective")

    for g in canonical["gates"]:
        gid = f"gate-{g.get('level')}"
        for ref in g.get("required_evidence_ids", []):
            if ref not in question_ids:
                out.fail(gid, "required_evidence_ids", f"'{ref}' is not a defined question")


def _validate_objectives(objectives: list[dict[str, Any]], out: _Collector) -> None:
    for o in objectives:
        oid = o.get("id") or "?"
        for field in REQUIRED_OBJECTIVE_FIELDS:
            if not o.get(field):
                out.fail(oid, field, "Missing or empty")
        level = o.get("level")
        if isinstance(level, bool) or level not in ALL_MATURITY_LEVELS:
            out.fail(oid, "level", f"{level!r} not in {list(ALL_MATURITY_LEVELS)}")
        if "default_importance" in o and not _is_scale(o["default_importance"]):
            out.fail(oid, "default_importance", f"{o['default_importance']!r} is not an integer 1..5")
        thresholds = o.get("thresholds") or {}
        green = thresholds.get("green", 80)
        yellow = thresholds.get("yellow", 50)
        if not (isinstance(green, int) and isinstance(yellow, int) and 0 < yellow < green <= 100):
            out.fail(oid, "thresholds", f"green={green!r} yellow={yellow!r}; need 0 < yellow < green <= 100")


def _validate_actions(actions: list[dict[str, Any]], out: _Collector) -> None:
    for a in actions:
        aid = a.get("id") or "?"
        if not a.get("title"):
            out.fail(aid, "title", "Missing or empty")
        priority = a.get("priority", "medium")
        if priority not in ALL_ACTION_PRIORITIES:
            out.fail(aid, "priority", f"'{priority}' not in {list(ALL_ACTION_PRIORITIES)}")


def _validate_gates(gates: list[dict[str, Any]], out: _Collector) -> None:
    allowed = (0,) + ALL_MATURITY_LEVELS
    seen: set[int] = set()
    for g in gates:
        level = g.get("level")
        gid = f"gate-{level}"
        if isinstance(level, bool) or level not in allowed:
            out.fail(gid, "level", f"{level!r} not in {list(allowed)}")
            continue
        if level in seen:
            out.fail(gid, "level", "Duplicate gate level")
        seen.add(level)
        if not g.get("label"):
            out.fail(gid, "label", "Missing or empty")


def _validate_score_thresholds(thresholds: dict[Any, Any], out: _Collector) -> None:
    bands: dict[int, float] = {}
    for level, minimum in thresholds.items():
        if isinstance(level, bool) or level not in ALL_MATURITY_LEVELS or level == 1:
            out.fail("score_thresholds", str(level), "Band level must be 2..4")
        elif isinstance(minimum, bool) or not isinstance(minimum, (int, float)):
            out.fail("score_thresholds", str(level), f"Band minimum must be a number, got {minimum!r}")
        else:
            bands[level] = minimum
    ordered = [bands[lvl] for lvl in sorted(bands)]
    if ordered != sorted(ordered):
        out.fail("score_thresholds", "*", f"Bands are not monotonic: {bands}")


def validate_and_build_spec(
    canonical: dict[str, Any],
    variant: str = "flat",
) -> DiagnosticSpec:
    """Validate a canonical spec dict and return a typed ``DiagnosticSpec``.

    This is the **only** code path that creates ``DiagnosticSpec`` objects
    from pack content.  Three phases:
      1. Per-entity field validation.
      2. Cross-reference validation (pillars, objectives, practices, gates).
      3. If all clear, construct frozen spec entities.

    Raises ``SpecViolation`` if ANY entity or cross-check has ANY violation.

    Parameters
    ----------
    canonical : dict
        Output of ``engine.adapter.normalize_raw_spec()``: lists keyed
        ``pillars``, ``questions``, ``objectives``, ``practices``, ``gates``,
        ``actions``, ``initiatives`` plus ``version`` and
        ``score_thresholds``.
    variant : str
        ``"flat"`` or ``"structured"``; recorded on the spec.
    """
    if not canonical.get("questions"):
        raise SpecViolation([{
            "entity_id": "*",
            "field": "questions",
            "detail": "Spec has zero questions; nothing to evaluate",
        }])

    out = _Collector()

    # ── Phase 1: per-entity field validation ──────────────────────
    if not canonical.get("version"):
        out.fail("*", "version", "Missing or empty")
    for kind in ("pillars", "questions", "objectives", "practices", "actions", "initiatives"):
        _check_duplicates(kind[:-1], canonical[kind], out)
    for q in canonical["questions"]:
        out.violations.extend(validate_question(q))
    for p in canonical["practices"]:
        level = p.get("maturity_level")
        if isinstance(level, bool) or level not in ALL_MATURITY_LEVELS:
            out.fail(p.get("id") or "?", "maturity_level", f"{level!r} not in {list(ALL_MATURITY_LEVELS)}")
    _validate_objectives(canonical["objectives"], out)
    _validate_actions(canonical["actions"], out)
    _validate_gates(canonical["gates"], out)
    _validate_score_thresholds(canonical.get("score_thresholds", {}), out)

    # ── Phase 2: cross-references ─────────────────────────────────
    _validate_cross_references(canonical, out)

    if out.violations:
        raise SpecViolation(out.violations)

    # ── Phase 3: construct frozen spec entities ───────────────────
    # Validation already passed; construction should not fail.
    return DiagnosticSpec(
        version=canonical["version"],
        pillars=tuple(Pillar.from_json(p) for p in canonical["pillars"]),
        questions=tuple(Question.from_json(q) for q in canonical["questions"]),
        objectives=tuple(Objective.from_json(o) for o in canonical["objectives"]),
        practices=tuple(Practice.from_json(p) for p in canonical["practices"]),
        gates=tuple(MaturityGate.from_json(g) for g in canonical["gates"]),
        actions=tuple(ActionDefinition.from_json(a) for a in canonical["actions"]),
        initiatives=tuple(Initiative.from_json(i) for i in canonical["initiatives"]),
        score_thresholds=tuple(sorted(canonical.get("score_thresholds", {}).items())),
        schema_variant=variant,
    )
