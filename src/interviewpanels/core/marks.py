"""Mark normalisation and interview score averaging."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..errors import MarkValidationError
from ..schemas import ABSENT, Absent, Mark, Numeric, is_graded


@dataclass
class MarkRules:
    """Input rules for raw mark text."""

    max_mark: int = 30
    max_input_length: int = 2
    absent_tokens: tuple[str, ...] = ("a", "ab")


def average(marks: Sequence[Mark | None], evaluator_count: int) -> Mark:
    """Average the first ``evaluator_count`` slots.

    Any ``Absent`` among them makes the whole result ``Absent``. Empty slots
    contribute zero and the mean is rounded half up.
    """
    if not marks or evaluator_count <= 0:
        return Numeric(0)

    considered = list(marks)[:evaluator_count]
    if any(isinstance(mark, Absent) for mark in considered):
        return ABSENT

    total = sum(mark.value for mark in considered if isinstance(mark, Numeric))
    # round(total / count) half up, without float error
    return Numeric((2 * total + evaluator_count) // (2 * evaluator_count))


class ScoreCalculator:
    """Turns raw evaluator input into marks and marks into a final score."""

    def __init__(self, *, rules: MarkRules | None = None) -> None:
        self._rules = rules or MarkRules()

    @property
    def rules(self) -> MarkRules:
        return self._rules

    def normalize(self, raw: str | int | None) -> Mark:
        if raw is None:
            return Numeric(0)
        if isinstance(raw, bool):
            raise MarkValidationError(str(raw), "not a mark")
        if isinstance(raw, int):
            return self._clamp(raw)

        text = str(raw).strip()
        if len(text) > self._rules.max_input_length:
            raise MarkValidationError(
                text, f"longer than {self._rules.max_input_length} characters"
            )
        if not text:
            return Numeric(0)
        if text.lower() in self._rules.absent_tokens:
            return ABSENT
        try:
            value = int(text)
        except ValueError:
            raise MarkValidationError(text, "expected a number or 'Ab'") from None
        return self._clamp(value)

    def average(self, marks: Sequence[Mark | None], evaluator_count: int) -> Mark:
        return average(marks, evaluator_count)

    def is_graded(self, marks: Sequence[Mark | None], evaluator_count: int) -> bool:
        return is_graded(marks, evaluator_count)

    def _clamp(self, value: int) -> Numeric:
        return Numeric(min(max(value, 0), self._rules.max_mark))
