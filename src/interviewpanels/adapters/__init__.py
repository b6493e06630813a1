"""Record store adapters for examination records."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, runtime_checkable

from ..schemas import Candidate, Evaluator, MarkUpdate, Panel, Scope
from .examination_records import ExaminationRecordAdapter
from .stores import ExaminationRecordStore, JsonRecordStore


@runtime_checkable
class RecordStore(Protocol):
    """Durable candidate records keyed by candidate id.

    Implementations raise ``PersistenceError`` when a write fails and return
    the records as they are after the write.
    """

    def list_candidates(self, scope: Scope) -> list[Candidate]:
        """Return the candidates of one department/faculty scope in a stable order."""

    def bulk_assign_panel(
        self,
        candidate_ids: Sequence[str],
        panel_id: int,
        evaluators: Sequence[Evaluator],
    ) -> list[Candidate]:
        """Record the panel and its evaluator snapshot on every listed candidate."""

    def relabel_panel(self, candidate_ids: Sequence[str], panel_id: int | None) -> list[Candidate]:
        """Change only the panel reference, keeping the evaluator snapshot and marks."""

    def update_marks(self, candidate_id: str, update: MarkUpdate) -> Candidate:
        """Write evaluator marks and the final average."""

    def forward(self, candidate_id: str, destination: str) -> Candidate:
        """Set the durable forwarded marker."""


@runtime_checkable
class PanelStore(Protocol):
    """Optional capability of stores that also keep the panel definitions."""

    def load_panels(self) -> list[Panel]:
        """Return the saved panels."""

    def save_panels(self, panels: Iterable[Panel]) -> None:
        """Replace the saved panels."""


__all__ = [
    "RecordStore",
    "PanelStore",
    "ExaminationRecordAdapter",
    "ExaminationRecordStore",
    "JsonRecordStore",
]
