from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from engine.scoring import assert_normalized_score, round_half_up
from schemas.domain import AggregateResult, PillarResult
from schemas.taxonomy import DiagnosticSpec

_log = logging.getLogger(__name__)


def _round2(value: float) -> float:
    return round_half_up(value, 2)


def aggregate_results(spec: DiagnosticSpec, scores: Iterable[dict]) -> AggregateResult:
    """Weighted per-pillar rollup of normalized score rows.

    Questions without a score row are excluded from numerator and
    denominator.  A pillar with no scored question reports ``None``.
    The overall score uses the raw pillar sums, not the rounded scores.
    """
    score_by_qid: dict[str, float] = {}
    for row in scores:
        qid = row["question_id"]
        score_by_qid[qid] = assert_normalized_score(qid, row["score"])

    for qid in score_by_qid:
        if qid not in spec.question_index:
            _log.warning("Score row for unknown question %s ignored", qid)

    weighted = defaultdict(float)
    weights = defaultdict(float)
    counts = defaultdict(int)

    for q in spec.questions:
        score = score_by_qid.get(q.question_id)
        if score is None:
            continue
        weighted[q.pillar_id] += score * q.weight
        weights[q.pillar_id] += q.weight
        counts[q.pillar_id] += 1

    pillars: list[PillarResult] = []
    for pillar in spec.pillars:
        pid = pillar.pillar_id
        weight_sum = weights[pid]
        pillars.append({
            "pillar_id": pid,
            "score": _round2(weighted[pid] / weight_sum) if weight_sum else None,
            "weight_sum": weight_sum,
            "scored_questions": counts[pid],
        })

    total_weight = sum(weights[p.pillar_id] for p in spec.pillars)
    total_weighted = sum(weighted[p.pillar_id] for p in spec.pillars)
    overall = _round2(total_weighted / total_weight) if total_weight else None

    return {"overall_score": overall, "pillars": pillars}
