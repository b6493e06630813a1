from __future__ import annotations

import json
from pathlib import Path

import pytest

from interviewpanels.adapters import (
    ExaminationRecordAdapter,
    ExaminationRecordStore,
    JsonRecordStore,
    PanelStore,
    RecordStore,
)
from interviewpanels.errors import PersistenceError
from interviewpanels.schemas import ABSENT, Evaluator, MarkUpdate, Numeric, Panel, Scope

SCOPE = Scope(department="Orthodontics", faculty="Saveetha Dental College")
EVALUATORS = [
    Evaluator(name="Dr. Rajan", designation="Professor", affiliation="SIMATS"),
    Evaluator(name="Dr. Lakshmi", designation="Reader", affiliation="SIMATS"),
]


def row(record_id: str, **fields) -> dict:
    base = {
        "id": record_id,
        "registered_name": f"Scholar {record_id}",
        "application_no": f"APP-{record_id}",
        "program": "Orthodontics",
        "institution": "Saveetha Dental College",
    }
    base.update(fields)
    return base


def fixed_clock() -> str:
    return "2025-06-01T10:00:00+00:00"


def test_parse_record_maps_examination_columns():
    candidate = ExaminationRecordAdapter().parse_record(
        row(
            "R-1",
            panel="Panel 2",
            examiner1="Dr. Rajan | Professor | SIMATS",
            examiner2="Dr. Lakshmi | Reader | SIMATS",
            examiner3=None,
            examiner1_marks=28,
            examiner2_marks="Ab",
            examiner3_marks=None,
            interview_marks="Ab",
            faculty_interview="Forwarded_To_Medical",
        )
    )

    assert candidate.assigned_panel == 2
    assert candidate.evaluators == EVALUATORS
    assert candidate.marks == [Numeric(28), ABSENT, None]
    assert candidate.average == ABSENT
    assert candidate.forwarded
    assert candidate.destination == "Forwarded_To_Medical"
    assert candidate.department == "Orthodontics"
    assert candidate.name == "Scholar R-1"


@pytest.mark.parametrize(
    ("value", "expected"),
    [("Panel 3", 3), ("panel 12", 12), ("4", 4), (5, 5), ("Panel 0", None), ("Unassigned", None), (None, None)],
)
def test_parse_panel(value, expected):
    assert ExaminationRecordAdapter.parse_panel(value) == expected


def test_parse_mark_clamps_and_drops_unrecognised_text():
    adapter = ExaminationRecordAdapter()

    assert adapter.parse_mark("45") == Numeric(30)
    assert adapter.parse_mark(12.6) == Numeric(13)
    assert adapter.parse_mark("a") == ABSENT
    assert adapter.parse_mark("n/a") is None
    assert adapter.parse_mark("") is None
    assert adapter.parse_mark("inf") is None
    assert adapter.parse_mark("nan") is None
    assert adapter.parse_mark(float("nan")) is None
    assert adapter.parse_mark(float("-inf")) is None


def test_store_lists_only_rows_in_scope():
    store = ExaminationRecordStore(
        [
            row("R-1"),
            row("R-2", program="Prosthodontics"),
            row("R-3", program=" orthodontics ", institution="Saveetha Dental College"),
            row("R-4", institution="Saveetha Medical College"),
        ]
    )

    assert [candidate.id for candidate in store.list_candidates(SCOPE)] == ["R-1", "R-3"]
    assert len(store.list_candidates(Scope(department="Orthodontics"))) == 3


def test_store_satisfies_protocols():
    assert isinstance(ExaminationRecordStore(), RecordStore)
    assert not isinstance(ExaminationRecordStore(), PanelStore)


def test_bulk_assign_writes_panel_label_and_snapshot():
    store = ExaminationRecordStore([row("R-1"), row("R-2")], clock=fixed_clock)

    updated = store.bulk_assign_panel(["R-1", "R-2"], 2, EVALUATORS)

    assert [candidate.assigned_panel for candidate in updated] == [2, 2]
    written = store.rows[0]
    assert written["panel"] == "Panel 2"
    assert written["examiner1"] == "Dr. Rajan | Professor | SIMATS"
    assert written["examiner3"] is None
    assert written["updated_at"] == "2025-06-01T10:00:00+00:00"


def test_bulk_assign_rejects_unknown_ids_without_writing():
    store = ExaminationRecordStore([row("R-1")])

    with pytest.raises(PersistenceError) as excinfo:
        store.bulk_assign_panel(["R-1", "R-9"], 1, EVALUATORS)

    assert excinfo.value.candidate_id == "R-9"
    assert "panel" not in store.rows[0]


def test_update_marks_stores_absent_as_ab():
    store = ExaminationRecordStore([row("R-1")])

    updated = store.update_marks(
        "R-1", MarkUpdate.from_marks([Numeric(24), ABSENT], ABSENT)
    )

    assert updated.marks == [Numeric(24), ABSENT, None]
    written = store.rows[0]
    assert written["examiner1_marks"] == 24
    assert written["examiner2_marks"] == "Ab"
    assert written["examiner3_marks"] is None
    assert written["interview_marks"] == "Ab"


def test_unknown_record_raises_persistence_error():
    store = ExaminationRecordStore()

    with pytest.raises(PersistenceError) as excinfo:
        store.forward("R-404", "Forwarded_To_Science")
    assert "R-404" in str(excinfo.value)


def test_json_store_persists_records_and_panels(tmp_path: Path):
    path = tmp_path / "records.json"
    path.write_text(json.dumps([row("R-1"), row("R-2")]), encoding="utf-8")

    store = JsonRecordStore(path, clock=fixed_clock)
    assert isinstance(store, PanelStore)
    assert store.load_panels() == []

    store.save_panels([Panel(id=1, evaluators=EVALUATORS)])
    store.forward("R-2", "Forwarded_To_Medical")

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["panels"][0]["id"] == 1
    assert document["records"][1]["faculty_interview"] == "Forwarded_To_Medical"

    reopened = JsonRecordStore(path)
    assert reopened.load_panels() == [Panel(id=1, evaluators=EVALUATORS)]
    assert reopened.list_candidates(SCOPE)[1].forwarded


def test_json_store_rejects_invalid_document(tmp_path: Path):
    path = tmp_path / "records.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValueError):
        JsonRecordStore(path)


def test_json_store_keeps_rows_unchanged_when_write_fails(tmp_path: Path, monkeypatch):
    path = tmp_path / "records.json"
    path.write_text(json.dumps([row("R-1")]), encoding="utf-8")
    store = JsonRecordStore(path)

    def refuse(self, *args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "write_text", refuse)

    with pytest.raises(PersistenceError):
        store.forward("R-1", "Forwarded_To_Medical")
    with pytest.raises(PersistenceError):
        store.update_marks("R-1", MarkUpdate.from_marks([Numeric(24)], Numeric(24)))
    with pytest.raises(PersistenceError):
        store.save_panels([Panel(id=1, evaluators=EVALUATORS)])

    candidate = store.list_candidates(SCOPE)[0]
    assert not candidate.forwarded
    assert candidate.marks == [None, None, None]
    assert store.load_panels() == []


def test_relabel_panel_keeps_examiner_snapshot():
    store = ExaminationRecordStore([row("R-1"), row("R-2")])
    store.bulk_assign_panel(["R-1", "R-2"], 3, EVALUATORS)

    moved = store.relabel_panel(["R-1"], 2)
    (cleared,) = store.relabel_panel(["R-2"], None)

    assert moved[0].assigned_panel == 2
    assert moved[0].evaluators == EVALUATORS
    assert cleared.assigned_panel is None
    assert store.rows[1]["examiner1"] == "Dr. Rajan | Professor | SIMATS"
    with pytest.raises(PersistenceError):
        store.relabel_panel(["R-9"], 1)
