"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .records import MARK_SLOTS


class ScopeConfig(BaseModel):
    department: str | None = None
    faculty: str | None = None


class ScoringConfig(BaseModel):
    debounce_seconds: float | None = Field(default=None, gt=0)
    max_mark: int | None = Field(default=None, ge=1)
    max_input_length: int | None = Field(default=None, ge=1)


class PanelConfig(BaseModel):
    max_evaluators: int | None = Field(default=None, ge=1, le=MARK_SLOTS)
    min_field_length: int | None = Field(default=None, ge=1)
    placeholder_terms: list[str] | None = None


class RoutingConfig(BaseModel):
    department_codes: dict[str, str] | None = None
    destinations: dict[str, list[str]] | None = None
    default_destination: str | None = None


class AppConfig(BaseModel):
    scope: ScopeConfig = Field(default_factory=ScopeConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    panels: PanelConfig = Field(default_factory=PanelConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for section in ("scope", "scoring", "panels", "routing"):
            values = getattr(self, section).model_dump(exclude_none=True)
            if values:
                settings[section] = values
        return settings


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
