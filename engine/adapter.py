# engine/adapter.py: Bridge spec pack schema variants → one DiagnosticSpec
"""
Spec packs exist in two schema variants.  Algorithms never see either of
them; they only ever consume the normalized ``DiagnosticSpec``.

``flat`` (v2.7.x)
    Questions carry a direct ``objective_id`` and optional
    ``trigger_action_id``.  Maturity gates are listed explicitly with
    ``required_evidence_ids``.

``structured`` (v2.9.x)
    Questions link to a practice (``practice_id``) which links to an
    objective.  Questions also carry ``initiative_id``, ``impact``,
    ``complexity`` and an ``expert_action``.  Gates are declared as a
    ``level_names`` map plus ``score_thresholds``; each level's gate
    requires every question at that level.

Canonical shape handed to the validator:
    {
        version, pillars, questions, objectives, practices,
        gates, actions, initiatives, score_thresholds
    }
"""
from __future__ import annotations

import logging
from typing import Any

from schemas.taxonomy import LEVEL_NAMES, DiagnosticSpec
from engine.taxonomy_validator import SpecViolation, validate_and_build_spec

_log = logging.getLogger(__name__)


def detect_variant(raw: dict[str, Any]) -> str:
    """Return ``"flat"`` or ``"structured"`` for a raw spec document.

    An explicit ``schema`` key wins; otherwise a ``practices`` list marks
    the structured variant.
    """
    declared = raw.get("schema")
    if declared is not None:
        if declared not in ("flat", "structured"):
            raise SpecViolation([{
                "entity_id": "*",
                "field": "schema",
                "detail": f"Unknown schema variant '{declared}'",
            }])
        return declared
    return "structured" if raw.get("practices") else "flat"


# ── Flat variant ──────────────────────────────────────────────────

def _normalize_flat(raw: dict[str, Any]) -> dict[str, Any]:
    questions = []
    for q in raw.get("questions", []):
        row = dict(q)
        row["pillar_id"] = q.get("pillar_id") or q.get("pillar")
        row.setdefault("level", 1)
        questions.append(row)

    objectives = []
    for o in raw.get("objectives", []):
        row = dict(o)
        row["pillar_id"] = o.get("pillar_id") or o.get("pillar")
        row["theme_id"] = o.get("theme_id") or o.get("theme")
        objectives.append(row)

    gates = []
    for g in raw.get("maturity_gates", raw.get("maturityGates", [])):
        gates.append({
            "level": g.get("level"),
            "label": g.get("label"),
            "required_evidence_ids": list(
                g.get("required_evidence_ids", g.get("required_question_ids", []))
            ),
        })

    return {
        "version": raw.get("version"),
        "pillars": list(raw.get("pillars", [])),
        "questions": questions,
        "objectives": objectives,
        "practices": [],
        "gates": gates,
        "actions": list(raw.get("actions", [])),
        "initiatives": list(raw.get("initiatives", [])),
        "score_thresholds": _parse_score_thresholds(raw.get("score_thresholds")),
    }


# ── Structured variant ────────────────────────────────────────────

def _normalize_structured(raw: dict[str, Any]) -> dict[str, Any]:
    default_pillar = raw.get("pillar")
    action_ids = {a.get("id") for a in raw.get("actions", [])}

    objectives = []
    objective_theme: dict[str, str | None] = {}
    for o in raw.get("objectives", []):
        row = dict(o)
        row["pillar_id"] = o.get("pillar_id") or o.get("pillar") or default_pillar
        row["theme_id"] = o.get("theme_id") or o.get("theme")
        if not row.get("action_id"):
            # act_<suffix> mirrors obj_<suffix> when the pack omits the link
            candidate = "act_" + o.get("id", "").removeprefix("obj_")
            if candidate in action_ids:
                row["action_id"] = candidate
        objectives.append(row)
        objective_theme[row.get("id")] = row["theme_id"]

    practices = []
    for p in raw.get("practices", []):
        practices.append({
            "id": p.get("id"),
            "objective_id": p.get("objective_id"),
            "title": p.get("title") or p.get("name"),
            "description": p.get("description", ""),
            "maturity_level": p.get("maturity_level", p.get("level")),
            "theme_id": p.get("theme_id") or objective_theme.get(p.get("objective_id")),
            "question_ids": list(p.get("question_ids", [])),
        })

    questions = []
    for q in raw.get("questions", []):
        row = dict(q)
        row["pillar_id"] = q.get("pillar_id") or q.get("pillar") or default_pillar
        row["level"] = q.get("level", q.get("maturity_level"))
        row.setdefault("weight", 2.0 if q.get("is_critical") is True else 1.0)
        questions.append(row)

    gate_cfg = raw.get("gates") or {}
    level_names = {_level_key(k): v for k, v in (gate_cfg.get("level_names") or {}).items()}
    gates = [{"level": 0, "label": level_names.get(0, LEVEL_NAMES[0]), "required_evidence_ids": []}]
    # Malformed keys become gates of their own and fail level validation
    malformed = [lvl for lvl in level_names if isinstance(lvl, str)]
    for level in sorted(lvl for lvl in level_names if isinstance(lvl, int) and lvl > 0) + malformed:
        gates.append({
            "level": level,
            "label": level_names[level],
            "required_evidence_ids": [q["id"] for q in questions if q.get("level") == level],
        })

    return {
        "version": raw.get("version"),
        "pillars": list(raw.get("pillars", [])),
        "questions": questions,
        "objectives": objectives,
        "practices": practices,
        "gates": gates,
        "actions": list(raw.get("actions", [])),
        "initiatives": list(raw.get("initiatives", [])),
        "score_thresholds": _parse_score_thresholds(gate_cfg.get("score_thresholds")),
    }


def _level_key(key: Any) -> int | str:
    """``"level_2"``, ``"2"`` and ``2`` all mean level 2.

    Anything else comes back as given so the validator can report it.
    """
    text = str(key).removeprefix("level_")
    return int(text) if text.isdecimal() else str(key)


def _parse_score_thresholds(raw: dict[str, Any] | None) -> dict[int | str, Any]:
    """Accept ``{"level_2": 50}`` or ``{"2": 50}`` spellings."""
    if not raw:
        return {}
    out: dict[int | str, Any] = {}
    for key, value in raw.items():
        numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
        out[_level_key(key)] = float(value) if numeric else value
    return out


def normalize_raw_spec(raw: dict[str, Any]) -> tuple[dict[str, Any], str]:
    """Return ``(canonical, variant)`` for a raw spec document."""
    variant = detect_variant(raw)
    if variant == "structured":
        canonical = _normalize_structured(raw)
    else:
        canonical = _normalize_flat(raw)
    _log.debug(
        "Spec %s normalized as %s: %d questions, %d objectives, %d practices",
        canonical.get("version"), variant,
        len(canonical["questions"]), len(canonical["objectives"]), len(canonical["practices"]),
    )
    return canonical, variant


def adapt_spec(raw: dict[str, Any]) -> DiagnosticSpec:
    """Normalize, validate and build.  Raises ``SpecViolation`` on bad content."""
    canonical, variant = normalize_raw_spec(raw)
    return validate_and_build_spec(canonical, variant)
