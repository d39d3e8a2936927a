# engine/capacity.py: Capacity-aware initiative selection.
"""Bound the initiative list by what the finance team can absorb.

team size × bandwidth → capacity band; band × time horizon → maximum
number of initiatives.  Initiatives that carry an action for a *locked*
objective are always selected, even beyond the maximum.  Remaining slots
are filled in rank order; everything else is deferred.
"""
from __future__ import annotations

import logging

from engine.scoring import round_half_up
from schemas.calibration import CalibrationParams, PlanningContextParams
from schemas.domain import CapacityPlan, PrioritizedInitiative
from schemas.taxonomy import ALL_MATURITY_LEVELS

_log = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════
# Tables
# ══════════════════════════════════════════════════════════════════

SMALL_TEAM_MAX = 5
MEDIUM_TEAM_MAX = 15

CAPACITY_MATRIX: dict[str, dict[str, str]] = {
    "small": {
        "minimal": "constrained",
        "limited": "constrained",
        "moderate": "moderate",
        "significant": "moderate",
    },
    "medium": {
        "minimal": "constrained",
        "limited": "moderate",
        "moderate": "moderate",
        "significant": "resourced",
    },
    "large": {
        "minimal": "moderate",
        "limited": "moderate",
        "moderate": "resourced",
        "significant": "resourced",
    },
}

MAX_INITIATIVES: dict[str, dict[str, int]] = {
    "constrained": {"6m": 2, "12m": 3, "24m": 5},
    "moderate": {"6m": 3, "12m": 5, "24m": 8},
    "resourced": {"6m": 5, "12m": 8, "24m": 12},
}

HEALTHY_UTILIZATION = 0.7

# Compile-time: every band in the matrix has a horizon row
assert {b for row in CAPACITY_MATRIX.values() for b in row.values()} == set(MAX_INITIATIVES), \
    "Capacity matrix and max-initiative table disagree on bands"


# ══════════════════════════════════════════════════════════════════
# Classification
# ══════════════════════════════════════════════════════════════════

def team_size_band(team_size: int) -> str:
    if team_size <= SMALL_TEAM_MAX:
        return "small"
    if team_size <= MEDIUM_TEAM_MAX:
        return "medium"
    return "large"


def capacity_band(context: PlanningContextParams) -> str:
    return CAPACITY_MATRIX[team_size_band(context.team_size)][context.bandwidth]


def max_initiatives_for(context: PlanningContextParams) -> int:
    return MAX_INITIATIVES[capacity_band(context)][context.time_horizon]


def target_level_for(context: PlanningContextParams, current_level: int | None) -> int | None:
    """The stated target, else one level above *current_level*."""
    if context.target_level is not None:
        return context.target_level
    if current_level is None:
        return None
    return min(current_level + 1, max(ALL_MATURITY_LEVELS))


def _recommendation(selected: int, max_count: int) -> str:
    if selected <= max_count * HEALTHY_UTILIZATION:
        return "Healthy capacity buffer. The plan leaves room for unplanned work."
    if selected <= max_count:
        return "Near capacity limit. Protect team time for the selected initiatives."
    over = selected - max_count
    return (
        f"Exceeds capacity by {over} initiative(s). Locked commitments exceed "
        f"what the team can absorb; extend the horizon or add capacity."
    )


# ══════════════════════════════════════════════════════════════════
# Planner
# ══════════════════════════════════════════════════════════════════

def _touches_locked(initiative: PrioritizedInitiative, locked: set[str]) -> bool:
    return any(a["objective_id"] in locked for a in initiative["actions"])


def plan_capacity(
    initiatives: list[PrioritizedInitiative],
    context: PlanningContextParams | None = None,
    calibration: CalibrationParams | None = None,
    current_level: int | None = None,
) -> CapacityPlan:
    """Select initiatives in rank order within the team's capacity.

    *initiatives* must already be ranked (``group_actions_by_initiative``
    output).  Absent context means the default planning context.
    *current_level* is the actual maturity level, used when the context
    states no target level.
    """
    context = context or PlanningContextParams()
    locked_objectives = set(calibration.locked) if calibration else set()

    band = capacity_band(context)
    max_count = MAX_INITIATIVES[band][context.time_horizon]

    locked_ids = [i["initiative_id"] for i in initiatives
                  if _touches_locked(i, locked_objectives)]
    selected = list(locked_ids)
    deferred: list[str] = []

    for initiative in initiatives:
        iid = initiative["initiative_id"]
        if iid in locked_ids:
            continue
        if len(selected) < max_count:
            selected.append(iid)
        else:
            deferred.append(iid)

    if len(locked_ids) > max_count:
        _log.warning("Locked initiatives (%d) exceed capacity (%d) for band %s",
                     len(locked_ids), max_count, band)

    # Report selected ids in rank order
    rank = {i["initiative_id"]: n for n, i in enumerate(initiatives)}
    selected.sort(key=rank.__getitem__)

    return {
        "capacity_band": band,
        "team_size_band": team_size_band(context.team_size),
        "bandwidth": context.bandwidth,
        "time_horizon": context.time_horizon,
        "target_level": target_level_for(context, current_level),
        "max_initiatives": max_count,
        "selected": selected,
        "deferred": deferred,
        "locked": locked_ids,
        "utilization": round_half_up(len(selected) / max_count, 2),
        "recommendation": _recommendation(len(selected), max_count),
    }
