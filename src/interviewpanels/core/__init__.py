"""Core allocation and scoring engine components."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .allocation import AllocationEngine, AllocationPlan, AllocationResult, panel_targets
from .context import EngineContext
from .forwarding import ForwardingGate, ForwardOutcome, ForwardReport
from .marks import MarkRules, ScoreCalculator, average
from .panels import PanelRegistry, PanelRules
from .routing import FacultyRouter, RoutingConfig
from .scheduling import DebounceScheduler
from .scoring import EditBuffer, EditState, ScoringSession

__all__ = [
    "AllocationEngine",
    "AllocationPlan",
    "AllocationResult",
    "panel_targets",
    "EngineContext",
    "ForwardingGate",
    "ForwardOutcome",
    "ForwardReport",
    "MarkRules",
    "ScoreCalculator",
    "average",
    "PanelRegistry",
    "PanelRules",
    "FacultyRouter",
    "RoutingConfig",
    "DebounceScheduler",
    "EditBuffer",
    "EditState",
    "ScoringSession",
]
