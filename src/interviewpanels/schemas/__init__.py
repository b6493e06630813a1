"""Pydantic schema definitions for examination records and panels."""

from __future__ import annotations

from .records import (
    ABSENT,
    MARK_SLOTS,
    Absent,
    Candidate,
    Evaluator,
    Mark,
    MarkUpdate,
    Numeric,
    Panel,
    Scope,
    is_graded,
)

__all__ = [
    "ABSENT",
    "MARK_SLOTS",
    "Absent",
    "Candidate",
    "Evaluator",
    "Mark",
    "MarkUpdate",
    "Numeric",
    "Panel",
    "Scope",
    "is_graded",
]
