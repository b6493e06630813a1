"""Mapping between examination record rows and engine candidates."""

from __future__ import annotations

import math
import re
from typing import Any, Sequence

import structlog

from ..core.routing import is_forwarded_status
from ..schemas import ABSENT, MARK_SLOTS, Candidate, Evaluator, Mark, MarkUpdate, Numeric, Scope

_PANEL_PATTERN = re.compile(r"^\s*(?:panel\s*)?(\d+)\s*$", re.IGNORECASE)
_ABSENT_TOKENS = {"a", "ab"}


class ExaminationRecordAdapter:
    """Converts ``examination_records`` rows into ``Candidate`` models and back.

    Rows keep the department console layout: the panel as ``"Panel N"``,
    evaluators as ``"name | designation | affiliation"`` labels in
    ``examiner1..3``, marks in ``examiner1_marks..examiner3_marks`` (an integer
    or ``"Ab"``), the average in ``interview_marks`` and the forwarding status
    in ``faculty_interview``.
    """

    def __init__(self, *, max_mark: int = 30) -> None:
        self._max_mark = max_mark
        self._logger = structlog.get_logger(__name__)

    def parse_record(self, row: dict[str, Any]) -> Candidate:
        record_id = str(row.get("id", "")).strip()
        if not record_id:
            raise ValueError("Examination record is missing its id")

        evaluators = [
            evaluator
            for evaluator in (
                Evaluator.from_label(row.get(f"examiner{slot}"))
                for slot in range(1, MARK_SLOTS + 1)
            )
            if evaluator is not None
        ]
        status = row.get("faculty_interview")

        return Candidate(
            id=record_id,
            name=row.get("registered_name") or row.get("name") or "Unknown",
            application_no=row.get("application_no") or row.get("app_no") or "",
            department=row.get("program") or row.get("department"),
            faculty=row.get("institution") or row.get("faculty"),
            marks=[
                self.parse_mark(row.get(f"examiner{slot}_marks"), record_id=record_id)
                for slot in range(1, MARK_SLOTS + 1)
            ],
            average=self.parse_mark(row.get("interview_marks"), record_id=record_id),
            assigned_panel=self.parse_panel(row.get("panel")),
            evaluators=evaluators,
            forwarded=is_forwarded_status(status),
            destination=status if is_forwarded_status(status) else None,
            updated_at=row.get("updated_at"),
        )

    def parse_mark(self, value: Any, *, record_id: str | None = None) -> Mark | None:
        if value is None or value == "":
            return None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return self._clamp(value, record_id=record_id)
        text = str(value).strip()
        if text.lower() in _ABSENT_TOKENS:
            return ABSENT
        try:
            number = float(text)
        except ValueError:
            self._logger.warning("records.unrecognised_mark", record_id=record_id, value=text)
            return None
        return self._clamp(number, record_id=record_id)

    def _clamp(self, number: float, *, record_id: str | None) -> Mark | None:
        if isinstance(number, float) and not math.isfinite(number):
            self._logger.warning("records.unrecognised_mark", record_id=record_id, value=str(number))
            return None
        return Numeric(min(max(int(round(number)), 0), self._max_mark))

    @staticmethod
    def parse_panel(value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value if value >= 1 else None
        match = _PANEL_PATTERN.match(str(value))
        if not match:
            return None
        number = int(match.group(1))
        return number if number >= 1 else None

    @staticmethod
    def format_mark(mark: Mark | None) -> int | str | None:
        if mark is None:
            return None
        if isinstance(mark, Numeric):
            return mark.value
        return "Ab"

    def mark_updates(self, update: MarkUpdate) -> dict[str, Any]:
        updates = {
            f"examiner{slot}_marks": self.format_mark(mark)
            for slot, mark in enumerate(update.marks, start=1)
        }
        updates["interview_marks"] = self.format_mark(update.average)
        return updates

    @staticmethod
    def assignment_updates(panel_id: int, evaluators: Sequence[Evaluator]) -> dict[str, Any]:
        updates = ExaminationRecordAdapter.panel_updates(panel_id)
        for slot in range(1, MARK_SLOTS + 1):
            evaluator = evaluators[slot - 1] if slot <= len(evaluators) else None
            updates[f"examiner{slot}"] = evaluator.to_label() if evaluator else None
        return updates

    @staticmethod
    def panel_updates(panel_id: int | None) -> dict[str, Any]:
        return {"panel": f"Panel {panel_id}" if panel_id is not None else None}

    @staticmethod
    def forward_updates(destination: str) -> dict[str, Any]:
        return {"faculty_interview": destination}

    @staticmethod
    def in_scope(row: dict[str, Any], scope: Scope) -> bool:
        department = str(row.get("program") or row.get("department") or "").strip().lower()
        if department != scope.department.strip().lower():
            return False
        if scope.faculty:
            faculty = str(row.get("institution") or row.get("faculty") or "").strip().lower()
            if faculty and faculty != scope.faculty.strip().lower():
                return False
        return True
