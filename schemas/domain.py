"""Core domain types: shared contracts used across the diagnostic engine.

These are the canonical shapes that cross layer boundaries.
Internal layers (spec model, answer union) use richer dataclasses,
but everything that leaves an engine must conform to these contracts
so the report is plain JSON.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, TypedDict


# ── Status literals ───────────────────────────────────────────────
ObjectiveStatus = Literal["green", "yellow", "red"]
EvidenceStateName = Literal["proven", "partial", "not_proven"]
ActionPriorityName = Literal["critical", "high", "medium"]
DerivedPriority = Literal["HIGH", "MEDIUM"]
TriggerReason = Literal["critical_risk", "maturity_blocker", "objective_incomplete"]
LegacyTriggerType = Literal["critical_risk", "maturity_blocker"]
PriorityTier = Literal["P1", "P2", "P3"]
Effort = Literal["low", "medium", "high"]
FocusReason = Literal["critical_gap", "foundation_gap", "optimization_gap"]
CapacityBand = Literal["constrained", "moderate", "resourced"]


# ── Aggregation ───────────────────────────────────────────────────
class ScoreRow(TypedDict):
    """A normalized per-question score (0.0–1.0)."""
    question_id: str
    score: float


class PillarResult(TypedDict):
    pillar_id: str
    score: Optional[float]
    weight_sum: float
    scored_questions: int


class AggregateResult(TypedDict):
    overall_score: Optional[float]
    pillars: List[PillarResult]


# ── Maturity ──────────────────────────────────────────────────────
class GateMaturity(TypedDict):
    """Legacy gate-based maturity that halts at the first failing gate."""
    achieved_level: int
    achieved_label: str
    blocking_level: Optional[int]
    blocking_evidence_ids: List[str]


class MaturityResult(TypedDict):
    """Execution score with critical capping."""
    execution_score: float
    potential_level: int
    actual_level: int
    capped: bool
    capped_by: List[str]
    capped_reason: Optional[str]


# ── Objective scoring ─────────────────────────────────────────────
class ObjectiveScore(TypedDict):
    objective_id: str
    name: str
    pillar_id: str
    level: int
    score: int
    status: ObjectiveStatus
    overridden: bool
    override_reason: Optional[str]
    questions_total: int
    questions_passed: int
    failed_criticals: List[str]


# ── Critical risks ────────────────────────────────────────────────
class CriticalRisk(TypedDict):
    question_id: str
    question_text: str
    pillar_id: str
    pillar_name: str
    level: int
    severity: Literal["CRITICAL"]


# ── Actions ───────────────────────────────────────────────────────
class ActionPlanItem(TypedDict):
    """Legacy evidence-triggered action."""
    id: str
    title: str
    description: str
    rationale: str
    priority: ActionPriorityName
    trigger_type: LegacyTriggerType
    evidence_id: str
    pillar_id: Optional[str]


class DerivedAction(TypedDict):
    """Objective-based action (one per incomplete objective)."""
    id: str
    objective_id: str
    objective_name: str
    title: str
    description: str
    rationale: str
    pillar_id: str
    level: int
    derived_priority: DerivedPriority
    trigger_reason: TriggerReason


class PrioritizedAction(TypedDict):
    priority: PriorityTier
    question_id: str
    question_text: str
    action_title: str
    action_text: str
    action_type: Optional[str]
    impact: str
    effort: Effort
    level: int
    score: float
    is_critical: bool
    objective_id: Optional[str]
    initiative_id: Optional[str]


class PrioritizedInitiative(TypedDict):
    initiative_id: str
    initiative_title: str
    initiative_description: str
    theme_id: Optional[str]
    priority: PriorityTier
    total_score: float
    actions: List[PrioritizedAction]


class InitiativeGrouping(TypedDict):
    initiatives: List[PrioritizedInitiative]
    ungrouped: List[PrioritizedAction]


class CapacityPlan(TypedDict):
    capacity_band: CapacityBand
    team_size_band: str
    bandwidth: str
    time_horizon: str
    target_level: Optional[int]
    max_initiatives: int
    selected: List[str]
    deferred: List[str]
    locked: List[str]
    utilization: float
    recommendation: str


# ── Maturity footprint ────────────────────────────────────────────
class PracticeWithEvidence(TypedDict):
    id: str
    title: str
    description: str
    maturity_level: int
    theme_id: Optional[str]
    evidence_state: EvidenceStateName
    has_critical: bool
    gap_score: float


class LevelSummary(TypedDict):
    level: int
    name: str
    practices: List[PracticeWithEvidence]
    proven_count: int
    partial_count: int
    total_count: int


class FocusItem(TypedDict):
    practice_id: str
    practice_title: str
    level: int
    priority_score: float
    reason: FocusReason


class MaturityFootprint(TypedDict):
    levels: List[LevelSummary]
    focus_next: List[FocusItem]
    summary_text: str


# ── Report ────────────────────────────────────────────────────────
class PillarReport(TypedDict):
    pillar_id: str
    name: str
    score: Optional[float]
    scored_questions: int
    total_questions: int
    gate_maturity: GateMaturity
    critical_risks: List[CriticalRisk]


class LegacyMaturity(GateMaturity):
    gates: List[Dict[str, Any]]


class DiagnosticReport(TypedDict):
    """Single report DTO.  JSON-serializable, no wall-clock fields."""
    run_id: str
    spec_version: str
    overall_score: Optional[float]
    pillars: List[PillarReport]
    maturity: LegacyMaturity
    maturity_v2: MaturityResult
    objective_scores: List[ObjectiveScore]
    critical_risks: List[CriticalRisk]
    actions: List[ActionPlanItem]
    derived_actions: List[DerivedAction]
    prioritized_actions: List[PrioritizedAction]
    initiatives: InitiativeGrouping
    capacity_plan: Optional[CapacityPlan]
    maturity_footprint: MaturityFootprint
    inputs: Dict[str, Any]
