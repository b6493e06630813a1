"""Record stores over examination-record rows."""

from __future__ import annotations

import copy
import json
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

import pendulum
import structlog

from ..errors import PersistenceError
from ..schemas import MARK_SLOTS, Candidate, Evaluator, MarkUpdate, Panel, Scope
from .examination_records import ExaminationRecordAdapter


def _timestamp() -> str:
    return pendulum.now("UTC").to_iso8601_string()


class ExaminationRecordStore:
    """In-memory ``examination_records`` table.

    Rows are kept in insertion order; every write stamps ``updated_at``.
    """

    def __init__(
        self,
        rows: Iterable[dict[str, Any]] = (),
        *,
        adapter: ExaminationRecordAdapter | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self._adapter = adapter or ExaminationRecordAdapter()
        self._clock = clock or _timestamp
        self._rows: dict[str, dict[str, Any]] = {}
        for row in rows:
            record_id = str(row.get("id", "")).strip()
            if not record_id:
                raise ValueError("Examination record is missing its id")
            self._rows[record_id] = dict(row)
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def rows(self) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._rows.values()]

    def insert(self, row: dict[str, Any]) -> Candidate:
        """Add a new examination record, e.g. a late registration."""
        record_id = str(row.get("id", "")).strip()
        with self._lock:
            if not record_id or record_id in self._rows:
                raise PersistenceError("Record id is missing or already exists", candidate_id=record_id or None)
            (candidate,) = self._write({record_id: {**row, "id": record_id, "updated_at": self._clock()}})
        self._logger.info("records.inserted", candidate_id=record_id)
        return candidate

    def list_candidates(self, scope: Scope) -> list[Candidate]:
        with self._lock:
            rows = [row for row in self._rows.values() if self._adapter.in_scope(row, scope)]
            return [self._adapter.parse_record(row) for row in rows]

    def bulk_assign_panel(
        self,
        candidate_ids: Sequence[str],
        panel_id: int,
        evaluators: Sequence[Evaluator],
    ) -> list[Candidate]:
        ids = list(candidate_ids)
        if not ids:
            return []
        if panel_id < 1:
            raise PersistenceError(f"Invalid panel number {panel_id}")
        if not 1 <= len(evaluators) <= MARK_SLOTS:
            raise PersistenceError(f"A panel must have between 1 and {MARK_SLOTS} evaluators")

        updates = self._adapter.assignment_updates(panel_id, evaluators)
        with self._lock:
            self._require_all(ids)
            updated = self._write({candidate_id: self._stage(candidate_id, updates) for candidate_id in ids})

        self._logger.debug("records.panel_assigned", panel_id=panel_id, records=len(ids))
        return updated

    def relabel_panel(self, candidate_ids: Sequence[str], panel_id: int | None) -> list[Candidate]:
        """Point records at a renumbered panel, or unassign them with ``None``.

        The examiner labels and marks already on the records are kept.
        """
        ids = list(candidate_ids)
        if not ids:
            return []
        if panel_id is not None and panel_id < 1:
            raise PersistenceError(f"Invalid panel number {panel_id}")

        updates = self._adapter.panel_updates(panel_id)
        with self._lock:
            self._require_all(ids)
            updated = self._write({candidate_id: self._stage(candidate_id, updates) for candidate_id in ids})

        self._logger.debug("records.panel_relabelled", panel_id=panel_id, records=len(ids))
        return updated

    def update_marks(self, candidate_id: str, update: MarkUpdate) -> Candidate:
        updates = self._adapter.mark_updates(update)
        with self._lock:
            self._require(candidate_id)
            (updated,) = self._write({candidate_id: self._stage(candidate_id, updates)})
        self._logger.debug("records.marks_updated", candidate_id=candidate_id)
        return updated

    def forward(self, candidate_id: str, destination: str) -> Candidate:
        updates = self._adapter.forward_updates(destination)
        with self._lock:
            self._require(candidate_id)
            (updated,) = self._write({candidate_id: self._stage(candidate_id, updates)})
        self._logger.debug("records.forwarded", candidate_id=candidate_id, destination=destination)
        return updated

    def _require(self, candidate_id: str) -> dict[str, Any]:
        try:
            return self._rows[candidate_id]
        except KeyError:
            raise PersistenceError(
                "Examination record not found", candidate_id=candidate_id
            ) from None

    def _require_all(self, candidate_ids: Sequence[str]) -> None:
        missing = [candidate_id for candidate_id in candidate_ids if candidate_id not in self._rows]
        if missing:
            raise PersistenceError(
                f"No examination records found for {', '.join(missing)}",
                candidate_id=missing[0],
            )

    def _stage(self, candidate_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        return {**self._rows[candidate_id], **updates, "updated_at": self._clock()}

    def _write(self, staged: dict[str, dict[str, Any]]) -> list[Candidate]:
        """Commit staged rows, then make them visible; a failed commit changes nothing."""
        candidates = [self._adapter.parse_record(row) for row in staged.values()]
        self._commit({**self._rows, **staged})
        self._rows.update(staged)
        return candidates

    def _commit(self, rows: dict[str, dict[str, Any]]) -> None:
        """Hook for stores that persist the whole table before a write is applied."""


class JsonRecordStore(ExaminationRecordStore):
    """Examination records kept in a JSON document on disk.

    The document holds ``{"panels": [...], "records": [...]}``; a bare list is
    read as records with no saved panels. Every write rewrites the file.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        adapter: ExaminationRecordAdapter | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self._path = Path(path)
        document = self._read()
        super().__init__(document.get("records", []), adapter=adapter, clock=clock)
        self._panels: list[dict[str, Any]] = list(document.get("panels") or [])

    @property
    def path(self) -> Path:
        return self._path

    def load_panels(self) -> list[Panel]:
        return [Panel.model_validate(panel) for panel in self._panels]

    def save_panels(self, panels: Iterable[Panel]) -> None:
        staged = [panel.model_dump(mode="json") for panel in panels]
        with self._lock:
            self._dump(staged, self._rows)
            self._panels = staged
        self._logger.debug("records.panels_saved", panels=len(staged), path=str(self._path))

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid records JSON: {exc}") from exc
        if isinstance(data, list):
            return {"records": data}
        if not isinstance(data, dict):
            raise ValueError("Records file must hold an object or a list of records")
        return data

    def _commit(self, rows: dict[str, dict[str, Any]]) -> None:
        self._dump(self._panels, rows)

    def _dump(self, panels: list[dict[str, Any]], rows: dict[str, dict[str, Any]]) -> None:
        payload = {"panels": panels, "records": list(rows.values())}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise PersistenceError(f"Could not write {self._path}: {exc}") from exc
