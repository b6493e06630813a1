"""Balanced allocation of candidates to panels."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

import structlog

from ..errors import ConsistencyWarning, PersistenceError
from ..schemas import MARK_SLOTS, Candidate, Panel
from .context import EngineContext


@dataclass(slots=True)
class AllocationPlan:
    """Outcome of the pure partition/assignment step."""

    assignments: dict[int, list[str]]
    targets: dict[int, int]
    fixed: list[str] = field(default_factory=list)
    movable: list[str] = field(default_factory=list)
    warnings: list[ConsistencyWarning] = field(default_factory=list)

    def sizes(self) -> dict[int, int]:
        return {panel_id: len(ids) for panel_id, ids in self.assignments.items()}

    def panel_of(self, candidate_id: str) -> int | None:
        for panel_id, ids in self.assignments.items():
            if candidate_id in ids:
                return panel_id
        return None


@dataclass(slots=True)
class AllocationResult:
    """A persisted allocation pass."""

    plan: AllocationPlan
    written: list[str] = field(default_factory=list)
    skipped_forwarded: list[str] = field(default_factory=list)
    failures: dict[int, str] = field(default_factory=dict)

    @property
    def assignments(self) -> dict[int, list[str]]:
        return self.plan.assignments

    @property
    def ok(self) -> bool:
        return not self.failures


def panel_targets(total: int, panel_ids: Sequence[int]) -> dict[int, int]:
    """Equal share of ``total`` per panel; the lowest ids take the remainder."""
    if not panel_ids:
        return {}
    base, remainder = divmod(total, len(panel_ids))
    ordered = sorted(panel_ids)
    return {panel_id: base + (1 if index < remainder else 0) for index, panel_id in enumerate(ordered)}


class AllocationEngine:
    """Tops every panel up towards an equal share of *all* candidates.

    Candidates that are fixed (graded or forwarded) stay on their panel and
    count towards its share; only movable candidates are redistributed, in
    their original order.
    """

    def __init__(self, context: EngineContext) -> None:
        self._context = context
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def allocate(self, candidates: Iterable[Candidate], panels: Iterable[Panel]) -> dict[int, list[str]]:
        return self.plan(candidates, panels).assignments

    def plan(
        self,
        candidates: Iterable[Candidate],
        panels: Iterable[Panel],
        *,
        renumbered: Mapping[int, int] | None = None,
    ) -> AllocationPlan:
        ordered_panels = sorted(panels, key=lambda panel: panel.id)
        if not ordered_panels:
            return AllocationPlan(assignments={}, targets={})

        pool = list(candidates)
        by_id = {panel.id: panel for panel in ordered_panels}
        assignments: dict[int, list[str]] = {panel.id: [] for panel in ordered_panels}
        plan = AllocationPlan(
            assignments=assignments,
            targets=panel_targets(len(pool), list(by_id)),
        )

        movable: list[Candidate] = []
        for candidate in pool:
            panel = self._recorded_panel(candidate, by_id, renumbered)
            evaluator_count = len(panel.evaluators) if panel else MARK_SLOTS
            if candidate.is_fixed(evaluator_count):
                if panel is not None:
                    assignments[panel.id].append(candidate.id)
                    plan.fixed.append(candidate.id)
                    continue
                if candidate.assigned_panel is not None:
                    warning = ConsistencyWarning(candidate.id, candidate.assigned_panel)
                    plan.warnings.append(warning)
                    self._logger.warning(
                        "allocation.dangling_panel",
                        candidate_id=candidate.id,
                        panel_id=candidate.assigned_panel,
                        forwarded=candidate.forwarded,
                    )
            movable.append(candidate)

        cursor = 0
        for panel in ordered_panels:
            needs = max(0, plan.targets[panel.id] - len(assignments[panel.id]))
            batch = movable[cursor : cursor + needs]
            assignments[panel.id].extend(candidate.id for candidate in batch)
            cursor += len(batch)

        if cursor < len(movable):
            last = ordered_panels[-1].id
            assignments[last].extend(candidate.id for candidate in movable[cursor:])

        plan.movable = [candidate.id for candidate in movable]
        return plan

    def rebalance(
        self,
        panels: Iterable[Panel],
        *,
        candidates: Iterable[Candidate] | None = None,
        renumbered: Mapping[int, int] | None = None,
    ) -> AllocationResult:
        """Plan and persist an allocation pass.

        Passes are serialised; ``renumbered`` maps old panel ids to new ones
        after a removal so that survivors keep their candidates.
        """
        with self._lock:
            pool = list(candidates) if candidates is not None else self._context.candidates
            ordered_panels = sorted(panels, key=lambda panel: panel.id)
            plan = self.plan(pool, ordered_panels, renumbered=renumbered)
            result = AllocationResult(plan=plan)
            originals = {candidate.id: candidate for candidate in pool}

            for panel in ordered_panels:
                changed: list[str] = []
                for candidate_id in plan.assignments[panel.id]:
                    candidate = originals[candidate_id]
                    if not self._needs_write(candidate, panel):
                        continue
                    if candidate.forwarded:
                        result.skipped_forwarded.append(candidate_id)
                        continue
                    changed.append(candidate_id)
                if not changed:
                    continue
                try:
                    updated = self._context.store.bulk_assign_panel(
                        changed, panel.id, list(panel.evaluators)
                    )
                except PersistenceError as exc:
                    result.failures[panel.id] = str(exc)
                    self._logger.error(
                        "allocation.persist_failed",
                        panel_id=panel.id,
                        candidates=changed,
                        error=str(exc),
                    )
                    self._context.notifier.notify(
                        f"Failed to assign scholars to {panel.label}: {exc}", "error"
                    )
                    continue
                self._context.merge(updated)
                result.written.extend(changed)

            self._logger.info(
                "allocation.pass",
                panels=len(ordered_panels),
                candidates=len(pool),
                sizes=plan.sizes(),
                fixed=len(plan.fixed),
                movable=len(plan.movable),
                written=len(result.written),
                failures=len(result.failures),
            )
            return result

    @staticmethod
    def _recorded_panel(
        candidate: Candidate,
        by_id: Mapping[int, Panel],
        renumbered: Mapping[int, int] | None,
    ) -> Panel | None:
        recorded = candidate.assigned_panel
        if recorded is None:
            return None
        if renumbered is not None:
            if recorded not in renumbered:
                return None
            recorded = renumbered[recorded]
        return by_id.get(recorded)

    @staticmethod
    def _needs_write(candidate: Candidate, panel: Panel) -> bool:
        return candidate.assigned_panel != panel.id or list(candidate.evaluators) != list(panel.evaluators)
