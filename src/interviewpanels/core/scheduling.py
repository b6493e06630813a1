"""Cancelable delayed tasks keyed by candidate id."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Protocol

import structlog


class TimerHandle(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


@dataclass(slots=True)
class _Pending:
    timer: TimerHandle
    callback: Callable[[], Any]
    token: object


class DebounceScheduler:
    """At most one outstanding delayed callback per key.

    Scheduling a key again restarts its delay. ``fire_now`` cancels the timer
    and runs the callback on the calling thread, so an explicit commit always
    wins over a pending debounce.

    Usage:
        scheduler = DebounceScheduler()
        scheduler.schedule("C-1", 3.0, lambda: save("C-1"))
        scheduler.fire_now("C-1")
    """

    def __init__(self, *, timer_factory: TimerFactory | None = None) -> None:
        self._timer_factory: TimerFactory = timer_factory or threading.Timer
        self._pending: dict[Hashable, _Pending] = {}
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def schedule(self, key: Hashable, delay: float, callback: Callable[[], Any]) -> None:
        token = object()
        timer = self._timer_factory(delay, lambda: self._expire(key, token))
        timer.daemon = True
        with self._lock:
            previous = self._pending.pop(key, None)
            self._pending[key] = _Pending(timer=timer, callback=callback, token=token)
        if previous is not None:
            previous.timer.cancel()
        timer.start()

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry.timer.cancel()
        return True

    def fire_now(self, key: Hashable) -> bool:
        """Run a pending callback immediately; False when nothing was pending."""
        with self._lock:
            entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry.timer.cancel()
        entry.callback()
        return True

    def pending(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._pending

    def shutdown(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for entry in entries:
            entry.timer.cancel()

    def _expire(self, key: Hashable, token: object) -> None:
        with self._lock:
            entry = self._pending.get(key)
            # a reschedule or cancel raced with this timer
            if entry is None or entry.token is not token:
                return
            del self._pending[key]
        try:
            entry.callback()
        except Exception:  # noqa: BLE001
            self._logger.exception("scheduler.callback_failed", key=str(key))
