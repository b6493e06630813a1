"""One-way forwarding of interview records to the faculty stage."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from ..errors import ConsentRequiredError, PersistenceError, RecordLockedError
from ..schemas import Candidate
from .context import EngineContext
from .routing import FacultyRouter
from .scoring import ScoringSession


@dataclass(slots=True)
class ForwardOutcome:
    candidate_id: str
    candidate: Candidate | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ForwardReport:
    """Per-candidate results of a bulk forward. Nothing is rolled back."""

    panel_id: int
    outcomes: list[ForwardOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        return [outcome.candidate_id for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> dict[str, str]:
        return {
            outcome.candidate_id: outcome.error
            for outcome in self.outcomes
            if outcome.error is not None
        }


class ForwardingGate:
    """Marks candidates as forwarded; a forwarded record is read-only."""

    def __init__(
        self,
        context: EngineContext,
        *,
        router: FacultyRouter | None = None,
        sessions: ScoringSession | None = None,
    ) -> None:
        self._context = context
        self._router = router or FacultyRouter()
        self._sessions = sessions
        self._logger = structlog.get_logger(__name__)

    def destination_for(self, candidate: Candidate) -> str:
        department = candidate.department or self._context.scope.department
        faculty = candidate.faculty or self._context.scope.faculty
        return self._router.destination(department, faculty)

    def forward_one(self, candidate_id: str, *, consent: bool) -> Candidate:
        if not consent:
            raise ConsentRequiredError("Forwarding requires the consent acknowledgment")
        candidate = self._context.get(candidate_id)
        if candidate.forwarded:
            raise RecordLockedError(candidate_id)
        return self._forward(candidate, notify=True)

    def forward_all(self, panel_id: int, *, consent: bool) -> ForwardReport:
        if not consent:
            raise ConsentRequiredError("Forwarding requires the consent acknowledgment")

        report = ForwardReport(panel_id=panel_id)
        pending = [
            candidate
            for candidate in self._context.candidates
            if candidate.assigned_panel == panel_id and not candidate.forwarded
        ]
        if not pending:
            self._context.notifier.notify(
                f"There are no scholars to forward in Panel {panel_id}.", "info"
            )
            return report

        for candidate in pending:
            try:
                forwarded = self._forward(candidate, notify=False)
            except PersistenceError as exc:
                report.outcomes.append(ForwardOutcome(candidate.id, error=str(exc)))
                continue
            report.outcomes.append(ForwardOutcome(candidate.id, candidate=forwarded))

        succeeded, failed = len(report.succeeded), len(report.failed)
        self._logger.info(
            "forwarding.bulk",
            panel_id=panel_id,
            succeeded=succeeded,
            failed=failed,
        )
        if failed:
            self._context.notifier.notify(
                f"Forwarded {succeeded} of {succeeded + failed} interview records in Panel {panel_id}; "
                f"{failed} failed: {', '.join(report.failed)}",
                "error",
            )
        else:
            self._context.notifier.notify(
                f"All {succeeded} interview records in Panel {panel_id} forwarded successfully. "
                "Scholars can no longer be edited.",
                "success",
            )
        return report

    def _forward(self, candidate: Candidate, *, notify: bool) -> Candidate:
        if self._sessions is not None:
            self._sessions.cancel_autosave(candidate.id)

        destination = self.destination_for(candidate)
        try:
            forwarded = self._context.store.forward(candidate.id, destination)
        except PersistenceError as exc:
            if exc.candidate_id is None:
                exc.candidate_id = candidate.id
            self._logger.error(
                "forwarding.failed",
                candidate_id=candidate.id,
                destination=destination,
                error=str(exc),
            )
            if notify:
                self._context.notifier.notify(f"Failed to forward interview: {exc}", "error")
            raise

        self._context.merge([forwarded])
        if self._sessions is not None:
            self._sessions.abandon(candidate.id)
        self._logger.info(
            "forwarding.forwarded",
            candidate_id=candidate.id,
            panel_id=candidate.assigned_panel,
            destination=destination,
        )
        if notify:
            self._context.notifier.notify(
                f"Interview record for {candidate.name or candidate.id} forwarded successfully. "
                "Scholar can no longer be edited.",
                "success",
            )
        return forwarded
