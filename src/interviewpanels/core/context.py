"""Explicit session context handed to every engine component."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import structlog

from ..errors import UnknownCandidateError
from ..schemas import Candidate, Scope

if TYPE_CHECKING:
    from ..adapters import RecordStore
    from ..notifications import Notifier


class EngineContext:
    """Holds the collaborators and the in-memory candidate list for one scope.

    Candidates keep the order in which the store returned them; allocation
    relies on that order being stable between passes.
    """

    def __init__(self, *, store: RecordStore, notifier: Notifier, scope: Scope) -> None:
        self.store = store
        self.notifier = notifier
        self.scope = scope
        self._candidates: dict[str, Candidate] = {}
        self._logger = structlog.get_logger(__name__)

    @property
    def candidates(self) -> list[Candidate]:
        return list(self._candidates.values())

    def __len__(self) -> int:
        return len(self._candidates)

    def load(self) -> list[Candidate]:
        records = self.store.list_candidates(self.scope)
        self._candidates = {candidate.id: candidate for candidate in records}
        self._logger.info(
            "context.loaded",
            department=self.scope.department,
            faculty=self.scope.faculty,
            candidates=len(self._candidates),
        )
        return self.candidates

    def get(self, candidate_id: str) -> Candidate:
        try:
            return self._candidates[candidate_id]
        except KeyError:
            raise UnknownCandidateError(candidate_id) from None

    def replace(self, candidate: Candidate) -> None:
        if candidate.id not in self._candidates:
            raise UnknownCandidateError(candidate.id)
        self._candidates[candidate.id] = candidate

    def merge(self, candidates: Iterable[Candidate]) -> int:
        """Refresh known candidates from store results; unknown ids are ignored."""
        merged = 0
        for candidate in candidates:
            if candidate.id in self._candidates:
                self._candidates[candidate.id] = candidate
                merged += 1
        return merged
