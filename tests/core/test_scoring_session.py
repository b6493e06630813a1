from __future__ import annotations

import pytest

from interviewpanels.core.context import EngineContext
from interviewpanels.core.panels import PanelRegistry
from interviewpanels.core.scheduling import DebounceScheduler
from interviewpanels.core.scoring import EditState, ScoringSession
from interviewpanels.errors import (
    MarkValidationError,
    NoActiveEditError,
    PersistenceError,
    RecordLockedError,
    ValidationError,
)
from interviewpanels.schemas import ABSENT, Candidate, Evaluator, Numeric, Panel, Scope

SCOPE = Scope(department="Prosthodontics")


class MarksStore:
    def __init__(self, candidates: list[Candidate]):
        self.records = {candidate.id: candidate for candidate in candidates}
        self.saved: list[tuple[str, object]] = []
        self.fail = False

    def list_candidates(self, scope):
        return list(self.records.values())

    def bulk_assign_panel(self, candidate_ids, panel_id, evaluators):
        raise AssertionError("not used")

    def update_marks(self, candidate_id, update):
        if self.fail:
            raise PersistenceError("write timed out", candidate_id=candidate_id)
        self.saved.append((candidate_id, update))
        record = self.records[candidate_id].model_copy(
            update={"marks": update.marks, "average": update.average}
        )
        self.records[candidate_id] = record
        return record

    def forward(self, candidate_id, destination):
        raise AssertionError("not used")


class StubNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, message, level="info"):
        self.messages.append((message, level))


class FakeTimer:
    def __init__(self, delay, callback):
        self.callback = callback
        self.daemon = False
        self.cancelled = False

    def start(self):
        pass

    def cancel(self):
        self.cancelled = True


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def fire_latest(self):
        self.timers[-1].callback()


def evaluators(count: int) -> list[Evaluator]:
    return [
        Evaluator(name=f"Dr. Member {index}", designation="Professor", affiliation="SIMATS")
        for index in range(count)
    ]


@pytest.fixture
def setup():
    panels = [Panel(id=1, evaluators=evaluators(2)), Panel(id=2, evaluators=evaluators(3))]
    candidates = [
        Candidate(id="S-1", name="Anitha", assigned_panel=1, evaluators=panels[0].evaluators),
        Candidate(id="S-2", name="Bharath", assigned_panel=2, evaluators=panels[1].evaluators),
        Candidate(id="S-3", name="Chitra", assigned_panel=1, forwarded=True, destination="Forwarded_To_Medical"),
        Candidate(id="S-4", name="Deepak"),
    ]
    store = MarksStore(candidates)
    notifier = StubNotifier()
    context = EngineContext(store=store, notifier=notifier, scope=SCOPE)
    context.load()
    factory = FakeTimerFactory()
    session = ScoringSession(
        context,
        PanelRegistry(panels),
        scheduler=DebounceScheduler(timer_factory=factory),
    )
    return session, context, store, notifier, factory


def test_begin_edit_shows_empty_slots_as_zero(setup):
    session, *_ = setup

    buffer = session.begin_edit("S-1")

    assert buffer.marks == [Numeric(0), Numeric(0), Numeric(0)]
    assert session.state("S-1") is EditState.EDITING
    assert session.begin_edit("S-1") is buffer


def test_mark_input_schedules_debounced_save(setup):
    session, context, store, _, factory = setup
    session.begin_edit("S-1")

    session.on_mark_input("S-1", 0, "28")
    session.on_mark_input("S-1", 1, "ab")

    assert session.state("S-1") is EditState.AUTOSAVE_PENDING
    assert factory.timers[0].cancelled
    assert store.saved == []
    assert session.preview("S-1") == ABSENT

    factory.fire_latest()

    candidate_id, update = store.saved[0]
    assert candidate_id == "S-1"
    assert update.marks == [Numeric(28), ABSENT, None]
    assert update.average == ABSENT
    assert session.state("S-1") is EditState.VIEWING
    assert context.get("S-1").average == ABSENT


def test_commit_saves_immediately_and_cancels_timer(setup):
    session, _, store, _, factory = setup
    session.begin_edit("S-2")
    session.on_mark_input("S-2", 0, "20")
    session.on_mark_input("S-2", 1, "21")

    updated = session.commit("S-2")

    assert updated is not None
    assert updated.average == Numeric(14)
    assert all(timer.cancelled for timer in factory.timers)
    factory.fire_latest()
    assert len(store.saved) == 1


def test_rejected_input_leaves_buffer_untouched(setup):
    session, *_ = setup
    session.begin_edit("S-1")
    session.on_mark_input("S-1", 0, "12")

    with pytest.raises(MarkValidationError):
        session.on_mark_input("S-1", 0, "xy")

    assert session.buffer("S-1")[0] == Numeric(12)


def test_slot_beyond_panel_size_is_rejected(setup):
    session, *_ = setup
    session.begin_edit("S-1")

    with pytest.raises(ValidationError):
        session.on_mark_input("S-1", 2, "10")


def test_unknown_panel_uses_single_evaluator(setup):
    session, _, store, _, _ = setup
    session.begin_edit("S-4")
    session.on_mark_input("S-4", 0, "17")

    session.commit("S-4")

    _, update = store.saved[0]
    assert update.marks == [Numeric(17), None, None]
    assert update.average == Numeric(17)


def test_failed_save_stays_editing_and_notifies(setup):
    session, context, store, notifier, _ = setup
    store.fail = True
    session.begin_edit("S-1")
    session.on_mark_input("S-1", 0, "25")

    assert session.commit("S-1") is None

    assert session.state("S-1") is EditState.EDITING
    assert session.buffer("S-1")[0] == Numeric(25)
    message, level = notifier.messages[-1]
    assert level == "error"
    assert "S-1" in message

    store.fail = False
    assert session.commit("S-1") is not None
    assert context.get("S-1").marks[0] == Numeric(25)


def test_forwarded_candidate_cannot_be_edited(setup):
    session, *_ = setup

    with pytest.raises(RecordLockedError):
        session.begin_edit("S-3")
    assert session.state("S-3") is EditState.FORWARDED


def test_save_after_forwarding_is_a_noop(setup):
    session, context, store, notifier, _ = setup
    session.begin_edit("S-1")
    session.on_mark_input("S-1", 0, "19")
    context.replace(context.get("S-1").model_copy(update={"forwarded": True}))

    assert session.save("S-1") is None

    assert store.saved == []
    assert notifier.messages[-1][1] == "warning"
    with pytest.raises(NoActiveEditError):
        session.buffer("S-1")


def test_abandon_drops_buffer_and_timer(setup):
    session, _, store, _, factory = setup
    session.begin_edit("S-1")
    session.on_mark_input("S-1", 0, "9")

    assert session.abandon("S-1")

    assert factory.timers[-1].cancelled
    assert session.state("S-1") is EditState.VIEWING
    assert store.saved == []


def test_commit_without_edit_raises(setup):
    session, *_ = setup

    with pytest.raises(NoActiveEditError):
        session.commit("S-1")


def test_zero_debounce_is_kept(setup):
    _, context, _, _, factory = setup

    session = ScoringSession(
        context,
        PanelRegistry([Panel(id=1, evaluators=evaluators(1))]),
        scheduler=DebounceScheduler(timer_factory=factory),
        debounce_seconds=0.0,
    )

    assert session.debounce_seconds == 0.0
