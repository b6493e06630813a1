from __future__ import annotations

import threading

from interviewpanels.core.scheduling import DebounceScheduler


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


def test_schedule_runs_callback_when_timer_fires():
    factory = FakeTimerFactory()
    scheduler = DebounceScheduler(timer_factory=factory)
    calls: list[str] = []

    scheduler.schedule("S-1", 3.0, lambda: calls.append("S-1"))

    timer = factory.timers[0]
    assert timer.started and timer.daemon
    assert timer.delay == 3.0
    assert scheduler.pending("S-1")

    timer.fire()

    assert calls == ["S-1"]
    assert not scheduler.pending("S-1")


def test_reschedule_cancels_previous_timer():
    factory = FakeTimerFactory()
    scheduler = DebounceScheduler(timer_factory=factory)
    calls: list[int] = []

    scheduler.schedule("S-1", 3.0, lambda: calls.append(1))
    scheduler.schedule("S-1", 3.0, lambda: calls.append(2))

    first, second = factory.timers
    assert first.cancelled
    # a stale timer that already fired must not run the old callback
    first.callback()
    second.fire()

    assert calls == [2]


def test_keys_are_independent():
    factory = FakeTimerFactory()
    scheduler = DebounceScheduler(timer_factory=factory)
    calls: list[str] = []

    scheduler.schedule("S-1", 1.0, lambda: calls.append("S-1"))
    scheduler.schedule("S-2", 1.0, lambda: calls.append("S-2"))
    assert scheduler.cancel("S-1")

    for timer in factory.timers:
        timer.fire()

    assert calls == ["S-2"]
    assert not scheduler.cancel("S-1")


def test_fire_now_runs_synchronously_and_clears_timer():
    factory = FakeTimerFactory()
    scheduler = DebounceScheduler(timer_factory=factory)
    calls: list[str] = []

    scheduler.schedule("S-1", 3.0, lambda: calls.append("saved"))

    assert scheduler.fire_now("S-1")
    assert calls == ["saved"]
    assert factory.timers[0].cancelled
    assert not scheduler.fire_now("S-1")


def test_callback_errors_are_logged_not_raised():
    factory = FakeTimerFactory()
    scheduler = DebounceScheduler(timer_factory=factory)

    def explode():
        raise RuntimeError("boom")

    scheduler.schedule("S-1", 1.0, explode)
    factory.timers[0].fire()

    assert not scheduler.pending("S-1")


def test_shutdown_cancels_everything():
    factory = FakeTimerFactory()
    scheduler = DebounceScheduler(timer_factory=factory)
    scheduler.schedule("S-1", 1.0, lambda: None)
    scheduler.schedule("S-2", 1.0, lambda: None)

    scheduler.shutdown()

    assert all(timer.cancelled for timer in factory.timers)
    assert not scheduler.pending("S-1")


def test_real_timer_fires():
    scheduler = DebounceScheduler()
    done = threading.Event()

    scheduler.schedule("S-1", 0.01, done.set)

    assert done.wait(timeout=2.0)
