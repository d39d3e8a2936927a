# schemas/answers.py: Tagged answer union for one diagnostic run.
"""Answer values are never compared loosely.

The answer provider hands over ``{question_id, value}`` rows where value is
``True``, ``False``, ``"N/A"`` or ``None`` (or the row is missing).  Every
value is parsed ONCE at the boundary into one of three variants:

  - ``Answered(value)``  an explicit yes/no
  - ``NotApplicable``    "N/A"
  - ``Unanswered``       ``None``, absent, or anything unrecognized

Engines switch over these variants with ``isinstance`` checks.  Only
``Answered(True)`` ever counts as evidence.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Union

_log = logging.getLogger(__name__)

NA_TOKEN = "N/A"


@dataclass(frozen=True)
class Answered:
    value: bool


@dataclass(frozen=True)
class NotApplicable:
    pass


@dataclass(frozen=True)
class Unanswered:
    pass


Answer = Union[Answered, NotApplicable, Unanswered]

NOT_APPLICABLE = NotApplicable()
UNANSWERED = Unanswered()


def parse_answer(raw: Any, question_id: str = "?") -> Answer:
    """Map a raw provider value onto the answer union.

    Strings such as ``"true"`` or ``"yes"`` are NOT coerced; a control
    is only evidenced by a real boolean.
    """
    if isinstance(raw, bool):
        return Answered(raw)
    if raw is None:
        return UNANSWERED
    if raw == NA_TOKEN:
        return NOT_APPLICABLE
    _log.warning(
        "Unrecognized answer value %r for question %s; treated as unanswered",
        raw, question_id,
    )
    return UNANSWERED


def to_raw(answer: Answer) -> bool | str | None:
    """Inverse of ``parse_answer`` for report echo-back."""
    if isinstance(answer, Answered):
        return answer.value
    if isinstance(answer, NotApplicable):
        return NA_TOKEN
    return None


def is_true(answer: Answer) -> bool:
    return isinstance(answer, Answered) and answer.value is True


def is_applicable(answer: Answer) -> bool:
    """True for anything except ``NotApplicable`` (unanswered still counts)."""
    return not isinstance(answer, NotApplicable)


class AnswerSheet:
    """Read-only question id → ``Answer`` mapping for a single run."""

    def __init__(self, answers: dict[str, Answer] | None = None) -> None:
        self._answers: dict[str, Answer] = dict(answers or {})

    @classmethod
    def from_inputs(cls, rows: Iterable[dict[str, Any]]) -> AnswerSheet:
        """Build from ``[{question_id, value}]`` rows.  Last row wins."""
        parsed: dict[str, Answer] = {}
        for row in rows:
            qid = row.get("question_id")
            if not qid:
                _log.warning("Answer row without question_id skipped: %r", row)
                continue
            parsed[qid] = parse_answer(row.get("value"), qid)
        return cls(parsed)

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> AnswerSheet:
        """Build from a plain ``{question_id: raw_value}`` dict."""
        return cls({qid: parse_answer(raw, qid) for qid, raw in values.items()})

    def get(self, question_id: str) -> Answer:
        return self._answers.get(question_id, UNANSWERED)

    def is_true(self, question_id: str) -> bool:
        return is_true(self.get(question_id))

    def question_ids(self) -> list[str]:
        return list(self._answers)

    def to_inputs(self) -> list[dict[str, Any]]:
        return [
            {"question_id": qid, "value": to_raw(answer)}
            for qid, answer in self._answers.items()
        ]

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers

    def __len__(self) -> int:
        return len(self._answers)
