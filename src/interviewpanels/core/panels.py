"""Panel registry: the ordered, densely numbered set of evaluation panels."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import structlog

from ..errors import EvaluatorValidationError, LastPanelError, UnknownPanelError
from ..schemas import Candidate, Evaluator, Panel


@dataclass
class PanelRules:
    """Validation rules for evaluator rosters."""

    max_evaluators: int = 3
    min_field_length: int = 2
    placeholder_terms: tuple[str, ...] = field(default=("test", "placeholder"))


class PanelRegistry:
    """Owns the panels and keeps their ids dense (``1..N``)."""

    _FIELDS = ("name", "designation", "affiliation")

    def __init__(
        self,
        panels: Iterable[Panel] | None = None,
        *,
        rules: PanelRules | None = None,
    ) -> None:
        self._rules = rules or PanelRules()
        self._panels: list[Panel] = sorted(panels or [], key=lambda panel: panel.id)
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def reconstruct(
        cls,
        candidates: Iterable[Candidate],
        *,
        rules: PanelRules | None = None,
    ) -> PanelRegistry:
        """Rebuild panels from the roster snapshots stored on candidate records.

        The first record seen for a panel id supplies its evaluators; records
        without any evaluator snapshot do not define a panel.
        """
        found: dict[int, Panel] = {}
        for candidate in candidates:
            panel_id = candidate.assigned_panel
            if panel_id is None or panel_id in found or not candidate.evaluators:
                continue
            found[panel_id] = Panel(id=panel_id, evaluators=list(candidate.evaluators))
        return cls(found.values(), rules=rules)

    @property
    def panels(self) -> list[Panel]:
        return list(self._panels)

    @property
    def ids(self) -> list[int]:
        return [panel.id for panel in self._panels]

    def __len__(self) -> int:
        return len(self._panels)

    def __contains__(self, panel_id: object) -> bool:
        return any(panel.id == panel_id for panel in self._panels)

    def load(self, panels: Iterable[Panel]) -> None:
        """Replace the panel set, e.g. with panels restored at startup."""
        ordered = sorted(panels, key=lambda panel: panel.id)
        if [panel.id for panel in ordered] != list(range(1, len(ordered) + 1)):
            self._logger.warning("panels.sparse_ids", ids=[panel.id for panel in ordered])
        self._panels = ordered
        self._logger.info("panels.loaded", panels=len(ordered))

    def get(self, panel_id: int) -> Panel:
        for panel in self._panels:
            if panel.id == panel_id:
                return panel
        raise UnknownPanelError(panel_id)

    def evaluator_count(self, panel_id: int | None) -> int:
        """Evaluator count of a panel; 1 when the panel is unknown."""
        if panel_id is None or panel_id not in self:
            return 1
        return len(self.get(panel_id).evaluators)

    def create(self, evaluators: Iterable[Evaluator | Mapping[str, Any]]) -> Panel:
        roster = self._validate(evaluators)
        next_id = (max(self.ids) if self._panels else 0) + 1
        panel = Panel(id=next_id, evaluators=roster)
        self._panels.append(panel)
        self._logger.info("panels.created", panel_id=panel.id, evaluators=len(roster))
        return panel

    def update(self, panel_id: int, evaluators: Iterable[Evaluator | Mapping[str, Any]]) -> Panel:
        roster = self._validate(evaluators)
        index = self._index(panel_id)
        panel = Panel(id=panel_id, evaluators=roster)
        self._panels[index] = panel
        self._logger.info("panels.updated", panel_id=panel_id, evaluators=len(roster))
        return panel

    def remove(self, panel_id: int) -> dict[int, int]:
        """Remove a panel and renumber the rest.

        Returns the renumbering as ``{old_id: new_id}`` for surviving panels.
        """
        index = self._index(panel_id)
        if len(self._panels) == 1:
            raise LastPanelError(panel_id)

        survivors = self._panels[:index] + self._panels[index + 1 :]
        renumbered: dict[int, int] = {}
        panels: list[Panel] = []
        for position, panel in enumerate(survivors, start=1):
            renumbered[panel.id] = position
            panels.append(panel.model_copy(update={"id": position}))
        self._panels = panels
        self._logger.info(
            "panels.removed",
            panel_id=panel_id,
            remaining=len(panels),
            renumbered={old: new for old, new in renumbered.items() if old != new},
        )
        return renumbered

    def _index(self, panel_id: int) -> int:
        for index, panel in enumerate(self._panels):
            if panel.id == panel_id:
                return index
        raise UnknownPanelError(panel_id)

    def _validate(self, evaluators: Iterable[Evaluator | Mapping[str, Any]]) -> list[Evaluator]:
        entries = list(evaluators)
        if not 1 <= len(entries) <= self._rules.max_evaluators:
            raise EvaluatorValidationError(
                f"A panel needs between 1 and {self._rules.max_evaluators} evaluators"
            )

        roster: list[Evaluator] = []
        for position, entry in enumerate(entries, start=1):
            raw = entry.model_dump() if isinstance(entry, Evaluator) else dict(entry)
            values = {name: str(raw.get(name) or "").strip() for name in self._FIELDS}
            if not all(values.values()):
                raise EvaluatorValidationError(
                    f"Evaluator {position}: name, designation and affiliation are required"
                )
            if any(self._looks_like_placeholder(value) for value in values.values()):
                raise EvaluatorValidationError(
                    f"Evaluator {position}: enter real evaluator information, not placeholder or test data"
                )
            roster.append(Evaluator(**values))
        return roster

    def _looks_like_placeholder(self, value: str) -> bool:
        lowered = value.lower()
        if len(lowered) < self._rules.min_field_length:
            return True
        return any(term in lowered for term in self._rules.placeholder_terms)
