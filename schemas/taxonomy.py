# schemas/taxonomy.py: Single authoritative taxonomy for the finance diagnostic.
"""Centralised taxonomy and spec model for the finance-capability diagnostic.

Spec Integrity (Non-Negotiable)
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Every spec entity is a **frozen dataclass**, validated
at construction time.  If a level is out of range or an enum value is
invalid the entity refuses to build and the spec never loads.  Scoring
code only ever sees a ``DiagnosticSpec`` produced by
``engine.adapter.adapt_spec()``.

Canonical sources defined here:
  - ``MaturityLevel``     1..4 (gates additionally allow level 0)
  - ``ActionPriority``    critical | high | medium (action definitions)
  - ``ExpertActionType``  quick_win | structural | behavioral | governance
  - ``EvidenceState``     proven | partial | not_proven
  - ``TrafficLight``      green | yellow | red
  - ``LEVEL_NAMES``       default level labels when the spec has no gates
  - ``DEFAULT_SCORE_THRESHOLDS`` execution score → potential level bands
  - ``Question`` / ``Pillar`` / ``Objective`` / ``Practice`` /
    ``MaturityGate`` / ``ActionDefinition`` / ``Initiative`` /
    ``DiagnosticSpec``: the spec model
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, get_args


# ══════════════════════════════════════════════════════════════════
# Canonical enums, enforced at construction
# ══════════════════════════════════════════════════════════════════

MaturityLevel = Literal[1, 2, 3, 4]

ALL_MATURITY_LEVELS: tuple[int, ...] = get_args(MaturityLevel)

ActionPriority = Literal["critical", "high", "medium"]

ALL_ACTION_PRIORITIES: tuple[str, ...] = get_args(ActionPriority)

ExpertActionType = Literal["quick_win", "structural", "behavioral", "governance"]

ALL_EXPERT_ACTION_TYPES: tuple[str, ...] = get_args(ExpertActionType)

EvidenceState = Literal["proven", "partial", "not_proven"]

ALL_EVIDENCE_STATES: tuple[str, ...] = get_args(EvidenceState)

TrafficLight = Literal["green", "yellow", "red"]

ALL_TRAFFIC_LIGHTS: tuple[str, ...] = get_args(TrafficLight)

SchemaVariant = Literal["flat", "structured"]

ALL_SCHEMA_VARIANTS: tuple[str, ...] = get_args(SchemaVariant)


# ── Level labels ──────────────────────────────────────────────────
LEVEL_NAMES: dict[int, str] = {
    0: "Ad-hoc",
    1: "Emerging",
    2: "Defined",
    3: "Managed",
    4: "Optimized",
}

# ── Execution score bands ─────────────────────────────────────────
# level → minimum execution score (0-100).  Level 1 is the floor and
# has no entry.  A spec pack may override these via score_thresholds.
DEFAULT_SCORE_THRESHOLDS: dict[int, float] = {
    2: 50.0,
    3: 80.0,
    4: 95.0,
}

# ── Question scoring defaults ─────────────────────────────────────
DEFAULT_IMPACT = 3
DEFAULT_COMPLEXITY = 3
DEFAULT_IMPORTANCE = 3

# ── Traffic-light defaults (per objective, overridable) ───────────
DEFAULT_GREEN_THRESHOLD = 80
DEFAULT_YELLOW_THRESHOLD = 50

# Compile-time: every non-floor level has a band
assert set(DEFAULT_SCORE_THRESHOLDS) == set(ALL_MATURITY_LEVELS) - {1}, \
    f"Score band gap: {set(ALL_MATURITY_LEVELS) - {1} - set(DEFAULT_SCORE_THRESHOLDS)}"


def _check_level(entity_id: str, name: str, value: Any, allowed: tuple[int, ...]) -> None:
    if isinstance(value, bool) or value not in allowed:
        raise ValueError(
            f"[{entity_id}] Invalid {name}: {value!r}; expected one of {list(allowed)}"
        )


def _check_scale(entity_id: str, name: str, value: Any) -> None:
    """Validate a 1..5 rating (impact, complexity, importance)."""
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValueError(
            f"[{entity_id}] Invalid {name}: {value!r}; expected an integer 1..5"
        )


# ══════════════════════════════════════════════════════════════════
# Spec entities
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Pillar:
    pillar_id: str
    name: str
    description: str = ""
    weight: float = 1.0

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Pillar:
        return cls(
            pillar_id=raw["id"],
            name=raw["name"],
            description=raw.get("description", ""),
            weight=raw.get("weight", 1.0),
        )


@dataclass(frozen=True)
class Question:
    """Typed, immutable questionnaire item.

    ``objective_id`` is the direct link used by flat spec packs.
    Structured packs link through ``practice_id`` instead; the adapter
    resolves both into ``DiagnosticSpec.objective_questions``.
    """

    # ── Identity ──────────────────────────────────────────────────
    question_id: str
    pillar_id: str
    text: str
    level: int                           # MaturityLevel literal

    # ── Risk / scoring ────────────────────────────────────────────
    is_critical: bool = False
    weight: float = 1.0
    impact: int = DEFAULT_IMPACT         # 1..5
    complexity: int = DEFAULT_COMPLEXITY  # 1..5

    # ── Linkage ───────────────────────────────────────────────────
    objective_id: str | None = None
    practice_id: str | None = None
    trigger_action_id: str | None = None
    initiative_id: str | None = None

    # ── Expert action ─────────────────────────────────────────────
    expert_action_title: str | None = None
    expert_action_type: str | None = None  # ExpertActionType literal
    help: str = ""

    def __post_init__(self) -> None:
        _check_level(self.question_id, "level", self.level, ALL_MATURITY_LEVELS)
        _check_scale(self.question_id, "impact", self.impact)
        _check_scale(self.question_id, "complexity", self.complexity)
        if not isinstance(self.is_critical, bool):
            raise ValueError(
                f"[{self.question_id}] Invalid is_critical: {self.is_critical!r}; expected bool"
            )
        if isinstance(self.weight, bool) or not isinstance(self.weight, (int, float)) or self.weight < 0:
            raise ValueError(
                f"[{self.question_id}] Invalid weight: {self.weight!r}; expected a non-negative number"
            )
        if (self.expert_action_type is not None
                and self.expert_action_type not in ALL_EXPERT_ACTION_TYPES):
            raise ValueError(
                f"[{self.question_id}] Invalid expert_action_type: "
                f"{self.expert_action_type!r}; expected one of {list(ALL_EXPERT_ACTION_TYPES)}"
            )

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Question:
        """Construct from a raw spec-pack question entry.

        Accepts both pack spellings: ``pillar`` / ``pillar_id`` and
        ``level`` / ``maturity_level``.  ``expert_action`` is flattened
        into ``expert_action_title`` / ``expert_action_type``.
        """
        expert = raw.get("expert_action") or {}
        return cls(
            question_id=raw["id"],
            pillar_id=raw.get("pillar_id") or raw["pillar"],
            text=raw["text"],
            level=raw.get("level", raw.get("maturity_level", 1)),
            is_critical=raw.get("is_critical", False),
            weight=raw.get("weight", 1.0),
            impact=raw.get("impact", DEFAULT_IMPACT),
            complexity=raw.get("complexity", DEFAULT_COMPLEXITY),
            objective_id=raw.get("objective_id"),
            practice_id=raw.get("practice_id"),
            trigger_action_id=raw.get("trigger_action_id"),
            initiative_id=raw.get("initiative_id"),
            expert_action_title=expert.get("title"),
            expert_action_type=expert.get("type"),
            help=raw.get("help", ""),
        )


@dataclass(frozen=True)
class Objective:
    objective_id: str
    pillar_id: str
    name: str
    level: int
    description: str = ""
    action_id: str | None = None
    theme_id: str | None = None
    default_importance: int = DEFAULT_IMPORTANCE
    pain_point_tags: tuple[str, ...] = ()
    green_threshold: int = DEFAULT_GREEN_THRESHOLD
    yellow_threshold: int = DEFAULT_YELLOW_THRESHOLD

    def __post_init__(self) -> None:
        _check_level(self.objective_id, "level", self.level, ALL_MATURITY_LEVELS)
        _check_scale(self.objective_id, "default_importance", self.default_importance)
        if not 0 < self.yellow_threshold < self.green_threshold <= 100:
            raise ValueError(
                f"[{self.objective_id}] Invalid thresholds: yellow={self.yellow_threshold}, "
                f"green={self.green_threshold}; expected 0 < yellow < green <= 100"
            )

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Objective:
        thresholds = raw.get("thresholds") or {}
        return cls(
            objective_id=raw["id"],
            pillar_id=raw.get("pillar_id") or raw["pillar"],
            name=raw["name"],
            level=raw["level"],
            description=raw.get("description", ""),
            action_id=raw.get("action_id"),
            theme_id=raw.get("theme_id") or raw.get("theme"),
            default_importance=raw.get("default_importance", DEFAULT_IMPORTANCE),
            pain_point_tags=tuple(raw.get("pain_point_tags", [])),
            green_threshold=thresholds.get("green", DEFAULT_GREEN_THRESHOLD),
            yellow_threshold=thresholds.get("yellow", DEFAULT_YELLOW_THRESHOLD),
        )


@dataclass(frozen=True)
class Practice:
    """A capability practice; criticality is NOT stored here.

    Whether a practice holds a critical question is a property of the
    spec's questions and is evaluated at footprint time.
    """
    practice_id: str
    objective_id: str
    title: str
    maturity_level: int
    question_ids: tuple[str, ...]
    description: str = ""
    theme_id: str | None = None

    def __post_init__(self) -> None:
        _check_level(self.practice_id, "maturity_level", self.maturity_level, ALL_MATURITY_LEVELS)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Practice:
        return cls(
            practice_id=raw["id"],
            objective_id=raw["objective_id"],
            title=raw.get("title") or raw["name"],
            maturity_level=raw.get("maturity_level", raw.get("level")),
            question_ids=tuple(raw["question_ids"]),
            description=raw.get("description", ""),
            theme_id=raw.get("theme_id"),
        )


@dataclass(frozen=True)
class MaturityGate:
    level: int
    label: str
    required_evidence_ids: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _check_level(f"gate-{self.level}", "level", self.level, (0,) + ALL_MATURITY_LEVELS)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> MaturityGate:
        """Accepts ``required_evidence_ids`` (flat) or ``required_question_ids`` (structured)."""
        evidence = raw.get("required_evidence_ids")
        if evidence is None:
            evidence = raw.get("required_question_ids", [])
        return cls(
            level=raw["level"],
            label=raw["label"],
            required_evidence_ids=tuple(evidence),
        )


@dataclass(frozen=True)
class ActionDefinition:
    action_id: str
    title: str
    description: str
    rationale: str
    priority: str  # ActionPriority literal

    def __post_init__(self) -> None:
        if self.priority not in ALL_ACTION_PRIORITIES:
            raise ValueError(
                f"[{self.action_id}] Invalid priority: {self.priority!r}; "
                f"expected one of {list(ALL_ACTION_PRIORITIES)}"
            )

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> ActionDefinition:
        return cls(
            action_id=raw["id"],
            title=raw["title"],
            description=raw.get("description", ""),
            rationale=raw.get("rationale", ""),
            priority=raw.get("priority", "medium"),
        )


@dataclass(frozen=True)
class Initiative:
    initiative_id: str
    title: str
    description: str = ""
    theme_id: str | None = None
    objective_id: str | None = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Initiative:
        return cls(
            initiative_id=raw["id"],
            title=raw["title"],
            description=raw.get("description", ""),
            theme_id=raw.get("theme_id"),
            objective_id=raw.get("objective_id"),
        )


# ══════════════════════════════════════════════════════════════════
# DiagnosticSpec: the normalized shape every engine consumes
# ══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DiagnosticSpec:
    """Immutable, normalized diagnostic spec.

    Built only by ``engine.adapter.adapt_spec()``.  Lookup indexes are
    computed in ``__post_init__`` so engines never scan lists by id.

    ``objective_questions`` maps objective id → ordered question ids,
    resolved once: practice → objective first, then the question's
    direct ``objective_id``.
    """

    version: str
    pillars: tuple[Pillar, ...]
    questions: tuple[Question, ...]
    objectives: tuple[Objective, ...] = ()
    practices: tuple[Practice, ...] = ()
    gates: tuple[MaturityGate, ...] = ()
    actions: tuple[ActionDefinition, ...] = ()
    initiatives: tuple[Initiative, ...] = ()
    score_thresholds: tuple[tuple[int, float], ...] = ()
    schema_variant: str = "flat"  # SchemaVariant literal

    # ── Computed indexes (set in __post_init__) ───────────────────
    question_index: dict[str, Question] = field(init=False, repr=False, compare=False)
    pillar_index: dict[str, Pillar] = field(init=False, repr=False, compare=False)
    objective_index: dict[str, Objective] = field(init=False, repr=False, compare=False)
    practice_index: dict[str, Practice] = field(init=False, repr=False, compare=False)
    action_index: dict[str, ActionDefinition] = field(init=False, repr=False, compare=False)
    initiative_index: dict[str, Initiative] = field(init=False, repr=False, compare=False)
    question_objective: dict[str, str] = field(init=False, repr=False, compare=False)
    objective_questions: dict[str, tuple[str, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.schema_variant not in ALL_SCHEMA_VARIANTS:
            raise ValueError(
                f"[{self.version}] Invalid schema_variant: {self.schema_variant!r}; "
                f"expected one of {list(ALL_SCHEMA_VARIANTS)}"
            )
        object.__setattr__(self, "question_index", {q.question_id: q for q in self.questions})
        object.__setattr__(self, "pillar_index", {p.pillar_id: p for p in self.pillars})
        object.__setattr__(self, "objective_index", {o.objective_id: o for o in self.objectives})
        object.__setattr__(self, "practice_index", {p.practice_id: p for p in self.practices})
        object.__setattr__(self, "action_index", {a.action_id: a for a in self.actions})
        object.__setattr__(self, "initiative_index", {i.initiative_id: i for i in self.initiatives})

        # ── Question → objective resolution (practice first) ──────
        practice_of: dict[str, str] = {}
        for practice in self.practices:
            for qid in practice.question_ids:
                practice_of.setdefault(qid, practice.practice_id)

        question_objective: dict[str, str] = {}
        for q in self.questions:
            practice_id = q.practice_id or practice_of.get(q.question_id)
            practice = self.practice_index.get(practice_id) if practice_id else None
            if practice is not None:
                question_objective[q.question_id] = practice.objective_id
            elif q.objective_id:
                question_objective[q.question_id] = q.objective_id

        objective_questions: dict[str, list[str]] = {o.objective_id: [] for o in self.objectives}
        for q in self.questions:
            oid = question_objective.get(q.question_id)
            if oid in objective_questions:
                objective_questions[oid].append(q.question_id)

        object.__setattr__(self, "question_objective", question_objective)
        object.__setattr__(
            self,
            "objective_questions",
            {oid: tuple(qids) for oid, qids in objective_questions.items()},
        )

    # ── Convenience lookups ───────────────────────────────────────

    def question(self, question_id: str) -> Question | None:
        return self.question_index.get(question_id)

    def objective_for(self, question_id: str) -> Objective | None:
        oid = self.question_objective.get(question_id)
        return self.objective_index.get(oid) if oid else None

    def questions_for_pillar(self, pillar_id: str) -> list[Question]:
        return [q for q in self.questions if q.pillar_id == pillar_id]

    def questions_for_objective(self, objective_id: str) -> list[Question]:
        return [self.question_index[qid] for qid in self.objective_questions.get(objective_id, ())]

    def critical_questions(self) -> list[Question]:
        return [q for q in self.questions if q.is_critical]

    def thresholds(self) -> dict[int, float]:
        """Score bands declared by the spec, or the defaults."""
        return dict(self.score_thresholds) or dict(DEFAULT_SCORE_THRESHOLDS)

    def level_name(self, level: int) -> str:
        for gate in self.gates:
            if gate.level == level:
                return gate.label
        return LEVEL_NAMES.get(level, f"Level {level}")
