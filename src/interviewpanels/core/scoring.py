"""Per-candidate mark editing with debounced auto-save."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum

import structlog

from ..errors import (
    NoActiveEditError,
    PersistenceError,
    RecordLockedError,
    ValidationError,
)
from ..schemas import MARK_SLOTS, Candidate, Mark, MarkUpdate, Numeric
from .context import EngineContext
from .marks import ScoreCalculator
from .panels import PanelRegistry
from .scheduling import DebounceScheduler


class EditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    AUTOSAVE_PENDING = "autosave_pending"
    SAVED = "saved"
    FORWARDED = "forwarded"


@dataclass
class EditBuffer:
    """Marks being edited for one candidate; empty slots hold ``Numeric(0)``."""

    candidate_id: str
    marks: list[Mark]
    state: EditState = EditState.EDITING


class ScoringSession:
    """Edit/save state machine for interview marks.

    Every accepted keystroke restarts the candidate's auto-save timer; an
    explicit commit cancels the timer and saves on the spot. A failed save
    keeps the buffer open so the operator can retry.
    """

    DEFAULT_DEBOUNCE_SECONDS = 3.0

    def __init__(
        self,
        context: EngineContext,
        registry: PanelRegistry,
        *,
        calculator: ScoreCalculator | None = None,
        scheduler: DebounceScheduler | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self._context = context
        self._registry = registry
        self._calculator = calculator or ScoreCalculator()
        self._scheduler = scheduler or DebounceScheduler()
        if debounce_seconds is None:
            debounce_seconds = self.DEFAULT_DEBOUNCE_SECONDS
        self._debounce_seconds = debounce_seconds
        self._buffers: dict[str, EditBuffer] = {}
        self._lock = threading.RLock()
        self._logger = structlog.get_logger(__name__)

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    def state(self, candidate_id: str) -> EditState:
        if self._context.get(candidate_id).forwarded:
            return EditState.FORWARDED
        with self._lock:
            buffer = self._buffers.get(candidate_id)
            return buffer.state if buffer else EditState.VIEWING

    def buffer(self, candidate_id: str) -> list[Mark]:
        with self._lock:
            return list(self._require_buffer(candidate_id).marks)

    def begin_edit(self, candidate_id: str) -> EditBuffer:
        candidate = self._context.get(candidate_id)
        if candidate.forwarded:
            raise RecordLockedError(candidate_id)
        with self._lock:
            existing = self._buffers.get(candidate_id)
            if existing is not None:
                return existing
            buffer = EditBuffer(candidate_id=candidate_id, marks=self._editable_marks(candidate))
            self._buffers[candidate_id] = buffer
        self._logger.debug("scoring.edit_started", candidate_id=candidate_id)
        return buffer

    def on_mark_input(self, candidate_id: str, slot: int, raw: str) -> Mark:
        candidate = self._context.get(candidate_id)
        if candidate.forwarded:
            self.abandon(candidate_id)
            raise RecordLockedError(candidate_id)

        evaluator_count = self._registry.evaluator_count(candidate.assigned_panel)
        if not 0 <= slot < evaluator_count:
            raise ValidationError(
                f"Slot {slot + 1} is not used; this panel has {evaluator_count} evaluator(s)"
            )
        mark = self._calculator.normalize(raw)

        with self._lock:
            buffer = self._require_buffer(candidate_id)
            buffer.marks[slot] = mark
            buffer.state = EditState.AUTOSAVE_PENDING
            self._scheduler.schedule(
                candidate_id,
                self._debounce_seconds,
                lambda: self.save(candidate_id),
            )
        return mark

    def preview(self, candidate_id: str) -> Mark:
        """Average shown while editing, before anything is saved."""
        candidate = self._context.get(candidate_id)
        evaluator_count = self._registry.evaluator_count(candidate.assigned_panel)
        with self._lock:
            marks = list(self._require_buffer(candidate_id).marks)
        return self._calculator.average(marks, evaluator_count)

    def commit(self, candidate_id: str) -> Candidate | None:
        """Immediate save (Enter key, field blur)."""
        with self._lock:
            self._require_buffer(candidate_id)
            self._scheduler.cancel(candidate_id)
            return self.save(candidate_id)

    def save(self, candidate_id: str) -> Candidate | None:
        with self._lock:
            buffer = self._require_buffer(candidate_id)
            self._scheduler.cancel(candidate_id)
            candidate = self._context.get(candidate_id)

            if candidate.forwarded:
                del self._buffers[candidate_id]
                self._logger.warning("scoring.save_after_forward", candidate_id=candidate_id)
                self._context.notifier.notify(
                    f"{candidate.name or candidate_id} has been forwarded; marks were not saved.",
                    "warning",
                )
                return None

            evaluator_count = self._registry.evaluator_count(candidate.assigned_panel)
            marks: list[Mark | None] = list(buffer.marks[:evaluator_count])
            marks += [None] * (MARK_SLOTS - len(marks))
            average = self._calculator.average(marks, evaluator_count)
            update = MarkUpdate.from_marks(marks, average)

            try:
                updated = self._context.store.update_marks(candidate_id, update)
            except PersistenceError as exc:
                buffer.state = EditState.EDITING
                self._logger.error(
                    "scoring.save_failed",
                    candidate_id=candidate_id,
                    error=str(exc),
                )
                self._context.notifier.notify(
                    f"Failed to save marks for {candidate.name or candidate_id} ({candidate_id}): {exc}",
                    "error",
                )
                return None

            buffer.state = EditState.SAVED
            self._context.merge([updated])
            del self._buffers[candidate_id]

        self._logger.info(
            "scoring.saved",
            candidate_id=candidate_id,
            panel_id=candidate.assigned_panel,
            evaluators=evaluator_count,
            average=str(average),
        )
        return updated

    def cancel_autosave(self, candidate_id: str) -> bool:
        """Clear a pending auto-save but keep the edit open."""
        with self._lock:
            cancelled = self._scheduler.cancel(candidate_id)
            buffer = self._buffers.get(candidate_id)
            if buffer is not None and buffer.state is EditState.AUTOSAVE_PENDING:
                buffer.state = EditState.EDITING
            return cancelled

    def abandon(self, candidate_id: str) -> bool:
        """Drop an edit without saving; clears any pending auto-save."""
        with self._lock:
            self._scheduler.cancel(candidate_id)
            return self._buffers.pop(candidate_id, None) is not None

    def close(self) -> None:
        with self._lock:
            self._scheduler.shutdown()
            self._buffers.clear()

    def _require_buffer(self, candidate_id: str) -> EditBuffer:
        buffer = self._buffers.get(candidate_id)
        if buffer is None:
            raise NoActiveEditError(candidate_id)
        return buffer

    @staticmethod
    def _editable_marks(candidate: Candidate) -> list[Mark]:
        marks: list[Mark] = []
        for mark in list(candidate.marks)[:MARK_SLOTS]:
            marks.append(mark if mark is not None else Numeric(0))
        marks += [Numeric(0)] * (MARK_SLOTS - len(marks))
        return marks
