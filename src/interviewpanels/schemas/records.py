"""Record models shared by the engine and the record store adapters."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

LABEL_SEPARATOR = " | "
MARK_SLOTS = 3


class Numeric(BaseModel):
    """A numeric interview mark.

    Values are clamped to the configured ``MarkRules.max_mark`` by the
    calculator and the record adapter.
    """

    kind: Literal["numeric"] = "numeric"
    value: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __init__(self, value: int = 0, **data) -> None:
        super().__init__(value=value, **data)

    def __str__(self) -> str:
        return str(self.value)


class Absent(BaseModel):
    """The candidate did not appear before this evaluator."""

    kind: Literal["absent"] = "absent"

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __str__(self) -> str:
        return "Ab"


Mark = Annotated[Union[Numeric, Absent], Field(discriminator="kind")]

ABSENT = Absent()


def is_graded(marks: Sequence[Mark | None], evaluator_count: int) -> bool:
    """Return True when a considered slot holds a real grade.

    ``Numeric(0)`` and empty slots do not count; ``Absent`` does.
    """
    for mark in list(marks)[: max(evaluator_count, 0)]:
        if isinstance(mark, Absent):
            return True
        if isinstance(mark, Numeric) and mark.value > 0:
            return True
    return False


class Evaluator(BaseModel):
    """Panel member. Compared by content."""

    name: str
    designation: str
    affiliation: str

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_label(self) -> str:
        return LABEL_SEPARATOR.join(
            (self.name.strip(), self.designation.strip(), self.affiliation.strip())
        )

    @classmethod
    def from_label(cls, label: str | None) -> Evaluator | None:
        """Parse ``"name | designation | affiliation"``; None when incomplete."""
        if not label or not label.strip():
            return None
        parts = [part.strip() for part in label.split(LABEL_SEPARATOR.strip())]
        if len(parts) < 3 or not all(parts[:3]):
            return None
        return cls(name=parts[0], designation=parts[1], affiliation=parts[2])


class Panel(BaseModel):
    """Evaluation panel of one to three evaluators."""

    id: int = Field(ge=1)
    evaluators: list[Evaluator] = Field(min_length=1, max_length=MARK_SLOTS)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def label(self) -> str:
        return f"Panel {self.id}"


class Scope(BaseModel):
    """Organisational scope a session operates within."""

    department: str
    faculty: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


def _empty_marks() -> list[Optional[Mark]]:
    return [None] * MARK_SLOTS


class Candidate(BaseModel):
    """Examination record of one candidate."""

    id: str
    name: str = ""
    application_no: str = ""
    department: str | None = None
    faculty: str | None = None
    marks: list[Optional[Mark]] = Field(default_factory=_empty_marks, max_length=MARK_SLOTS)
    average: Optional[Mark] = None
    assigned_panel: int | None = None
    evaluators: list[Evaluator] = Field(default_factory=list)
    forwarded: bool = False
    destination: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def has_been_graded(self, evaluator_count: int = MARK_SLOTS) -> bool:
        return is_graded(self.marks, evaluator_count)

    def is_fixed(self, evaluator_count: int = MARK_SLOTS) -> bool:
        return self.forwarded or self.has_been_graded(evaluator_count)


class MarkUpdate(BaseModel):
    """Payload written by a score save."""

    examiner1: Optional[Mark] = None
    examiner2: Optional[Mark] = None
    examiner3: Optional[Mark] = None
    average: Mark

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_marks(cls, marks: Sequence[Mark | None], average: Mark) -> MarkUpdate:
        padded = list(marks)[:MARK_SLOTS] + [None] * (MARK_SLOTS - len(marks))
        return cls(
            examiner1=padded[0],
            examiner2=padded[1],
            examiner3=padded[2],
            average=average,
        )

    @property
    def marks(self) -> list[Mark | None]:
        return [self.examiner1, self.examiner2, self.examiner3]
