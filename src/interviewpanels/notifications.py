"""User-facing notification sinks."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

import pendulum
import structlog

NotificationLevel = Literal["info", "success", "warning", "error"]

LEVELS: tuple[str, ...] = ("info", "success", "warning", "error")


@runtime_checkable
class Notifier(Protocol):
    def notify(self, message: str, level: NotificationLevel) -> None:
        """Show a message to the operator."""


@dataclass(frozen=True, slots=True)
class Notification:
    message: str
    level: str
    timestamp: str


class LogNotifier:
    """Sends notifications to structlog and keeps the most recent ones."""

    def __init__(self, *, history_size: int = 100) -> None:
        self._history: deque[Notification] = deque(maxlen=history_size)
        self._logger = structlog.get_logger(__name__)

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def messages(self, level: str | None = None) -> list[str]:
        return [item.message for item in self._history if level is None or item.level == level]

    def notify(self, message: str, level: NotificationLevel = "info") -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown notification level: {level!r}")
        self._history.append(
            Notification(message=message, level=level, timestamp=pendulum.now().to_iso8601_string())
        )
        log = self._logger.error if level == "error" else (
            self._logger.warning if level == "warning" else self._logger.info
        )
        log("notification", level_name=level, message=message)


__all__ = ["Notifier", "Notification", "NotificationLevel", "LogNotifier"]
