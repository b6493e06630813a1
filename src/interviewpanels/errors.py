"""Error taxonomy for the panel engine.

Validation and structural errors are raised before any state changes.
Persistence errors originate in the record store. Consistency warnings are
never raised; the allocation engine collects and logs them.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(EngineError, ValueError):
    """Rejected user input."""


class MarkValidationError(ValidationError):
    """Raw mark text that does not normalise to a mark."""

    def __init__(self, raw: str, reason: str):
        super().__init__(f"Invalid mark {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class EvaluatorValidationError(ValidationError):
    """Incomplete or placeholder evaluator roster."""


class ConsentRequiredError(ValidationError):
    """Forwarding requested without the consent acknowledgment."""


class StructuralError(EngineError):
    """Operation that would break a structural invariant."""


class LastPanelError(StructuralError):
    """Removing the only remaining panel."""

    def __init__(self, panel_id: int):
        super().__init__(f"Panel {panel_id} is the last panel and cannot be removed")
        self.panel_id = panel_id


class UnknownPanelError(StructuralError):
    def __init__(self, panel_id: int):
        super().__init__(f"Panel {panel_id} does not exist")
        self.panel_id = panel_id


class UnknownCandidateError(StructuralError):
    def __init__(self, candidate_id: str):
        super().__init__(f"Candidate {candidate_id!r} is not in the current scope")
        self.candidate_id = candidate_id


class RecordLockedError(StructuralError):
    """The candidate has been forwarded and is read-only."""

    def __init__(self, candidate_id: str):
        super().__init__(f"Candidate {candidate_id!r} has been forwarded and can no longer be edited")
        self.candidate_id = candidate_id


class NoActiveEditError(StructuralError):
    def __init__(self, candidate_id: str):
        super().__init__(f"No edit in progress for candidate {candidate_id!r}")
        self.candidate_id = candidate_id


class PersistenceError(EngineError):
    """A write to the record store failed."""

    def __init__(self, message: str, *, candidate_id: str | None = None):
        super().__init__(message)
        self.candidate_id = candidate_id

    def __str__(self) -> str:
        base = super().__str__()
        if self.candidate_id is None:
            return base
        return f"{base} (candidate {self.candidate_id})"


class ConsistencyWarning(UserWarning):
    """A fixed candidate references a panel that no longer exists."""

    def __init__(self, candidate_id: str, panel_id: int):
        super().__init__(
            f"Candidate {candidate_id!r} is recorded on missing panel {panel_id}; treated as movable"
        )
        self.candidate_id = candidate_id
        self.panel_id = panel_id


__all__ = [
    "EngineError",
    "ValidationError",
    "MarkValidationError",
    "EvaluatorValidationError",
    "ConsentRequiredError",
    "StructuralError",
    "LastPanelError",
    "UnknownPanelError",
    "UnknownCandidateError",
    "RecordLockedError",
    "NoActiveEditError",
    "PersistenceError",
    "ConsistencyWarning",
]
