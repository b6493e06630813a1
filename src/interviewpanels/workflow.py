"""Interview workflow: panel triggers, rosters and audit trail."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import pendulum
import structlog

from .adapters import PanelStore
from .core import (
    AllocationEngine,
    AllocationResult,
    EngineContext,
    ForwardingGate,
    ForwardReport,
    PanelRegistry,
    ScoringSession,
)
from .core import average as compute_average
from .errors import PersistenceError
from .schemas import Candidate, Evaluator, Mark, Panel
from . import __version__


@dataclass(slots=True)
class RosterEntry:
    """One row of a panel roster."""

    candidate: Candidate
    marks: list[Mark | None]
    average: Mark | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.candidate.id,
            "name": self.candidate.name,
            "application_no": self.candidate.application_no,
            "marks": [str(mark) if mark is not None else None for mark in self.marks],
            "average": str(self.average) if self.average is not None else None,
            "forwarded": self.candidate.forwarded,
            "destination": self.candidate.destination,
        }


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record, ensure_ascii=False))
            handle.write("\n")


class OutputWriter:
    """Persist roster exports."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class InterviewWorkflow:
    """Drives the engine from panel and candidate-set changes.

    Creating or removing a panel rebalances the allocation, editing a panel
    rewrites its roster snapshot, and a change in the number of candidates
    rebalances on the next sync.
    """

    def __init__(
        self,
        *,
        context: EngineContext,
        registry: PanelRegistry,
        engine: AllocationEngine,
        sessions: ScoringSession,
        gate: ForwardingGate,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._context = context
        self._registry = registry
        self._engine = engine
        self._sessions = sessions
        self._gate = gate
        self._audit = audit_logger
        self._assignments: dict[int, list[str]] = {}
        self._logger = structlog.get_logger(__name__)

    @property
    def context(self) -> EngineContext:
        return self._context

    @property
    def registry(self) -> PanelRegistry:
        return self._registry

    @property
    def sessions(self) -> ScoringSession:
        return self._sessions

    @property
    def panels(self) -> list[Panel]:
        return self._registry.panels

    @property
    def assignments(self) -> dict[int, list[str]]:
        return {panel_id: list(ids) for panel_id, ids in self._assignments.items()}

    def load(self, panels: Iterable[Panel] | None = None) -> list[Candidate]:
        """Read the scope's candidates and restore panels.

        Panels come from ``panels``, then from the store when it keeps them,
        then from the roster snapshots on the candidate records.
        """
        candidates = self._context.load()
        restored = list(panels) if panels is not None else []
        if not restored and isinstance(self._context.store, PanelStore):
            restored = self._context.store.load_panels()
        if not restored:
            restored = PanelRegistry.reconstruct(candidates).panels
        self._registry.load(restored)
        self._assignments = self._recorded_assignments()
        self._logger.info(
            "workflow.loaded",
            candidates=len(candidates),
            panels=len(self._registry),
        )
        return candidates

    def allocate(self, *, renumbered: Mapping[int, int] | None = None) -> AllocationResult:
        result = self._engine.rebalance(self._registry.panels, renumbered=renumbered)
        self._assignments = {panel_id: list(ids) for panel_id, ids in result.assignments.items()}
        self._record(
            "allocation",
            sizes=result.plan.sizes(),
            written=len(result.written),
            failures={str(panel_id): error for panel_id, error in result.failures.items()},
            warnings=[str(warning) for warning in result.plan.warnings],
        )
        return result

    def create_panel(self, evaluators: Iterable[Evaluator | Mapping[str, Any]]) -> Panel:
        panel = self._registry.create(evaluators)
        self._save_panels()
        self._record("panel_created", panel_id=panel.id)
        self.allocate()
        self._context.notifier.notify(f"{panel.label} created successfully.", "success")
        return panel

    def update_panel(
        self, panel_id: int, evaluators: Iterable[Evaluator | Mapping[str, Any]]
    ) -> Panel:
        panel = self._registry.update(panel_id, evaluators)
        self._save_panels()

        ids = [
            candidate.id
            for candidate in self._context.candidates
            if candidate.assigned_panel == panel_id and not candidate.forwarded
        ]
        if ids:
            try:
                updated = self._context.store.bulk_assign_panel(ids, panel_id, list(panel.evaluators))
            except PersistenceError as exc:
                self._logger.error("workflow.roster_update_failed", panel_id=panel_id, error=str(exc))
                self._context.notifier.notify(
                    f"{panel.label} was updated but its scholars could not be: {exc}", "error"
                )
                return panel
            self._context.merge(updated)

        self._record("panel_updated", panel_id=panel_id, candidates=len(ids))
        self._context.notifier.notify(f"{panel.label} updated successfully.", "success")
        return panel

    def remove_panel(self, panel_id: int) -> AllocationResult:
        renumbered = self._registry.remove(panel_id)
        self._save_panels()
        self._record(
            "panel_removed",
            panel_id=panel_id,
            renumbered={str(old): new for old, new in renumbered.items() if old != new},
        )
        result = self.allocate(renumbered=renumbered)
        self._relabel_forwarded(panel_id, renumbered)
        self._context.notifier.notify(
            f"Panel {panel_id} removed; scholars were redistributed across "
            f"{len(self._registry)} panel(s).",
            "success",
        )
        return result

    def sync_candidates(self) -> bool:
        """Reload candidates; rebalance when their number changed."""
        previous = len(self._context)
        self._context.load()
        if len(self._context) == previous:
            return False
        self._logger.info("workflow.candidates_changed", previous=previous, current=len(self._context))
        if len(self._registry):
            self.allocate()
        return True

    def roster(self, panel_id: int) -> list[RosterEntry]:
        self._registry.get(panel_id)
        evaluator_count = self._registry.evaluator_count(panel_id)
        known = {candidate.id: candidate for candidate in self._context.candidates}
        entries: list[RosterEntry] = []
        for candidate_id in self._assignments.get(panel_id, []):
            candidate = known.get(candidate_id)
            if candidate is None:
                continue
            marks = list(candidate.marks[:evaluator_count])
            average = candidate.average
            if average is None and candidate.has_been_graded(evaluator_count):
                average = compute_average(marks, evaluator_count)
            entries.append(RosterEntry(candidate=candidate, marks=marks, average=average))
        return entries

    def rosters(self) -> dict[int, list[RosterEntry]]:
        return {panel_id: self.roster(panel_id) for panel_id in self._registry.ids}

    def record_marks(self, candidate_id: str, marks: Sequence[str]) -> Candidate | None:
        """Enter every mark for one candidate and save immediately."""
        self._sessions.begin_edit(candidate_id)
        try:
            for slot, raw in enumerate(marks):
                self._sessions.on_mark_input(candidate_id, slot, raw)
        except Exception:
            self._sessions.abandon(candidate_id)
            raise
        updated = self._sessions.commit(candidate_id)
        if updated is not None:
            self._record(
                "marks_saved",
                candidate_id=candidate_id,
                marks=[str(mark) if mark is not None else None for mark in updated.marks],
                average=str(updated.average) if updated.average is not None else None,
            )
        return updated

    def forward(self, candidate_id: str, *, consent: bool) -> Candidate:
        forwarded = self._gate.forward_one(candidate_id, consent=consent)
        self._record(
            "forwarded",
            candidate_id=candidate_id,
            panel_id=forwarded.assigned_panel,
            destination=forwarded.destination,
        )
        return forwarded

    def forward_panel(self, panel_id: int, *, consent: bool) -> ForwardReport:
        self._registry.get(panel_id)
        report = self._gate.forward_all(panel_id, consent=consent)
        if report.outcomes:
            self._record(
                "panel_forwarded",
                panel_id=panel_id,
                succeeded=report.succeeded,
                failed=report.failed,
            )
        return report

    def close(self) -> None:
        self._sessions.close()

    def _relabel_forwarded(self, removed_id: int, renumbered: Mapping[int, int]) -> None:
        """Follow a renumbering on forwarded records, which allocation never rewrites.

        Forwarded candidates of the removed panel are unassigned; the rest take
        their panel's new id. Both keep their evaluator snapshot.
        """
        moves: dict[int | None, list[str]] = {}
        for candidate in self._context.candidates:
            if not candidate.forwarded or candidate.assigned_panel is None:
                continue
            if candidate.assigned_panel == removed_id:
                target = None
            else:
                target = renumbered.get(candidate.assigned_panel, candidate.assigned_panel)
                if target == candidate.assigned_panel:
                    continue
            moves.setdefault(target, []).append(candidate.id)

        for target, ids in moves.items():
            try:
                updated = self._context.store.relabel_panel(ids, target)
            except PersistenceError as exc:
                self._logger.error("workflow.relabel_failed", panel_id=target, candidates=ids, error=str(exc))
                self._context.notifier.notify(
                    f"Forwarded scholars could not be moved off Panel {removed_id}: {exc}", "error"
                )
                continue
            self._context.merge(updated)
            self._logger.info("workflow.forwarded_relabelled", panel_id=target, candidates=ids)

    def _recorded_assignments(self) -> dict[int, list[str]]:
        assignments: dict[int, list[str]] = {panel_id: [] for panel_id in self._registry.ids}
        for candidate in self._context.candidates:
            if candidate.assigned_panel in assignments:
                assignments[candidate.assigned_panel].append(candidate.id)
        return assignments

    def _save_panels(self) -> None:
        store = self._context.store
        if isinstance(store, PanelStore):
            store.save_panels(self._registry.panels)

    def _record(self, event: str, **fields: Any) -> None:
        if not self._audit:
            return
        self._audit.append(
            {
                "event": event,
                "department": self._context.scope.department,
                "faculty": self._context.scope.faculty,
                "timestamp": pendulum.now().to_iso8601_string(),
                "app_version": __version__,
                **fields,
            }
        )
