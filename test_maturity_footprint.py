from __future__ import annotations

from conftest import sheet
from engine.maturity_footprint import (
    build_maturity_footprint,
    compute_evidence_state,
    compute_focus_next,
    footprint_practices,
    summary_text,
)
from schemas.taxonomy import Practice


def _practice(pid, level, state, critical=False):
    gap = {"proven": 0.0, "partial": 0.5, "not_proven": 1.0}[state]
    return {
        "id": pid, "title": pid.upper(), "description": "", "maturity_level": level,
        "theme_id": None, "evidence_state": state, "has_critical": critical, "gap_score": gap,
    }


def _level(level, proven, total):
    return {"level": level, "name": f"L{level}", "practices": [],
            "proven_count": proven, "partial_count": 0, "total_count": total}


class TestEvidenceState:
    PRACTICE = Practice(practice_id="p", objective_id="o", title="P",
                        maturity_level=1, question_ids=("q1", "q2"))

    def test_states(self):
        assert compute_evidence_state(self.PRACTICE, sheet()) == "proven"
        assert compute_evidence_state(self.PRACTICE, sheet(q2=False)) == "partial"
        assert compute_evidence_state(self.PRACTICE, sheet(q1=False, q2=False)) == "not_proven"

    def test_not_applicable_and_unanswered_are_ignored(self):
        assert compute_evidence_state(self.PRACTICE, sheet(q1="N/A")) == "proven"
        assert compute_evidence_state(self.PRACTICE, sheet(q1=None)) == "proven"

    def test_nothing_answered_is_not_proven(self):
        assert compute_evidence_state(self.PRACTICE, sheet(q1=None, q2="N/A")) == "not_proven"


class TestFocusNext:
    def test_excludes_proven_and_ranks_by_priority(self):
        practices = [
            _practice("a", 3, "partial"),           # 2 × 0.5 = 1.0
            _practice("b", 1, "proven"),
            _practice("c", 2, "not_proven"),        # 3 × 1.0 = 3.0
            _practice("d", 3, "partial", True),     # 2 × 0.5 × 2 = 2.0
            _practice("e", 4, "not_proven"),        # 1 × 1.0 = 1.0
        ]
        focus = compute_focus_next(practices)
        assert [f["practice_id"] for f in focus] == ["c", "d", "a"]
        assert [f["reason"] for f in focus] == ["foundation_gap", "critical_gap", "optimization_gap"]
        assert [f["priority_score"] for f in focus] == [3.0, 2.0, 1.0]

    def test_ties_keep_input_order(self):
        practices = [_practice(pid, 3, "partial") for pid in ("x", "y", "z", "w")]
        assert [f["practice_id"] for f in compute_focus_next(practices)] == ["x", "y", "z"]

    def test_limit(self):
        practices = [_practice(f"p{i}", 1, "not_proven") for i in range(5)]
        assert len(compute_focus_next(practices, limit=2)) == 2
        assert compute_focus_next([]) == []


class TestSummaryText:
    def test_uneven_footprint_wins(self):
        levels = [_level(1, 1, 1), _level(2, 0, 2), _level(3, 1, 2), _level(4, 0, 1)]
        assert summary_text(levels).startswith("Your footprint is uneven")

    def test_exceptional(self):
        levels = [_level(n, 2, 2) for n in (1, 2, 3, 4)]
        assert summary_text(levels).startswith("Exceptional maturity")

    def test_strong_foundation(self):
        levels = [_level(1, 2, 2), _level(2, 2, 2), _level(3, 0, 2), _level(4, 0, 2)]
        assert summary_text(levels).startswith("Strong foundation")

    def test_foundation_established(self):
        levels = [_level(1, 2, 2), _level(2, 1, 2), _level(3, 0, 2), _level(4, 0, 2)]
        assert summary_text(levels).startswith("Foundation established")

    def test_foundation_gaps(self):
        levels = [_level(1, 1, 2), _level(2, 0, 2), _level(3, 0, 2), _level(4, 0, 2)]
        assert summary_text(levels).startswith("Foundation gaps remain")


class TestFootprint:
    def test_flat_spec_uses_objectives_as_practices(self, spec):
        practices = footprint_practices(spec)
        assert [p.practice_id for p in practices] == ["obj_budget", "obj_close", "obj_insight"]
        assert practices[1].question_ids == ("q3", "q4")

    def test_all_true(self, spec, all_true):
        footprint = build_maturity_footprint(spec, all_true)
        assert [lv["name"] for lv in footprint["levels"]] == ["Emerging", "Defined", "Managed", "Optimized"]
        assert footprint["focus_next"] == []
        assert footprint["summary_text"].startswith("Exceptional maturity")

    def test_partial_critical_practice_is_focused(self, spec):
        footprint = build_maturity_footprint(spec, sheet(q3=False))
        level_two = footprint["levels"][1]
        assert level_two["partial_count"] == 1
        assert level_two["practices"][0]["has_critical"] is True
        assert footprint["focus_next"] == [{
            "practice_id": "obj_close",
            "practice_title": "Close discipline",
            "level": 2,
            "priority_score": 3.0,
            "reason": "critical_gap",
        }]
        assert footprint["summary_text"].startswith("Your footprint is uneven")
