# schemas/calibration.py: Optional calibration and planning inputs.
"""Input models validated at the boundary with pydantic.

Both models are optional inputs to ``engine.report_builder.build_report``.
Invalid values raise ``pydantic.ValidationError`` before any engine runs.
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

Bandwidth = Literal["minimal", "limited", "moderate", "significant"]
TimeHorizon = Literal["6m", "12m", "24m"]


class CalibrationParams(BaseModel):
    importance_map: dict[str, int] = Field(
        default_factory=dict,
        description=(
            "Objective id → importance 1..5.  3 is neutral; objectives "
            "missing from the map fall back to their spec default."
        ),
    )
    locked: list[str] = Field(
        default_factory=list,
        description=(
            "Objective ids the customer has committed to.  Initiatives "
            "touching a locked objective are never deferred by capacity."
        ),
    )

    @field_validator("importance_map")
    @classmethod
    def _importance_in_range(cls, value: dict[str, int]) -> dict[str, int]:
        bad = {k: v for k, v in value.items() if not 1 <= v <= 5}
        if bad:
            raise ValueError(f"importance must be 1..5, got {bad}")
        return value


class PlanningContextParams(BaseModel):
    team_size: int = Field(
        default=5,
        ge=1,
        description="Finance team headcount available for improvement work.",
    )
    bandwidth: Bandwidth = Field(
        default="limited",
        description="Share of team time that can go to initiatives.",
    )
    time_horizon: TimeHorizon = Field(
        default="12m",
        description="Planning window for the action plan.",
    )
    target_level: int | None = Field(
        default=None,
        ge=1,
        le=4,
        description="Maturity level the customer is aiming for.  Defaults to one "
        "level above the current actual level in the capacity plan.",
    )
    pain_points: list[str] = Field(
        default_factory=list,
        description="Pain-point tags; matching objectives get a score boost.",
    )
