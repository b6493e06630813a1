from __future__ import annotations

import pytest

from interviewpanels.core.marks import MarkRules, ScoreCalculator, average
from interviewpanels.errors import MarkValidationError
from interviewpanels.schemas import ABSENT, Absent, Numeric


def test_average_rounds_half_up():
    assert average([Numeric(10), Numeric(11), None], 2) == Numeric(11)
    assert average([Numeric(20), Numeric(25), Numeric(30)], 3) == Numeric(25)
    assert average([Numeric(1), Numeric(0), Numeric(0)], 3) == Numeric(0)
    assert average([Numeric(2), Numeric(0), Numeric(0)], 3) == Numeric(1)


def test_average_absent_dominates_considered_slots():
    assert average([Numeric(25), ABSENT, Numeric(30)], 3) == ABSENT
    assert isinstance(average([ABSENT, None, None], 1), Absent)


def test_average_ignores_slots_beyond_evaluator_count():
    assert average([Numeric(20), ABSENT, Numeric(30)], 1) == Numeric(20)
    assert average([Numeric(20), Numeric(10), ABSENT], 2) == Numeric(15)


def test_average_missing_slots_count_as_zero():
    assert average([Numeric(30), None, None], 3) == Numeric(10)


def test_average_empty_or_no_evaluators_is_zero():
    assert average([], 3) == Numeric(0)
    assert average([Numeric(10)], 0) == Numeric(0)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", Numeric(0)),
        ("  ", Numeric(0)),
        (None, Numeric(0)),
        ("a", ABSENT),
        ("Ab", ABSENT),
        ("AB", ABSENT),
        (" 7 ", Numeric(7)),
        ("30", Numeric(30)),
        ("45", Numeric(30)),
        ("-5", Numeric(0)),
        (12, Numeric(12)),
    ],
)
def test_normalize_accepts_marks(raw, expected):
    assert ScoreCalculator().normalize(raw) == expected


@pytest.mark.parametrize("raw", ["xy", "1a", "abc", "100", "7.5"])
def test_normalize_rejects_text(raw):
    with pytest.raises(MarkValidationError) as excinfo:
        ScoreCalculator().normalize(raw)
    assert excinfo.value.raw == raw.strip()


def test_normalize_uses_configured_rules():
    calculator = ScoreCalculator(rules=MarkRules(max_mark=50, max_input_length=3))

    assert calculator.normalize("100") == Numeric(50)
    assert calculator.normalize("45") == Numeric(45)


def test_is_graded_treats_zero_as_ungraded():
    calculator = ScoreCalculator()

    assert not calculator.is_graded([Numeric(0), None, None], 3)
    assert calculator.is_graded([Numeric(0), ABSENT, None], 3)
    assert not calculator.is_graded([Numeric(0), Numeric(12), None], 1)
