import threading

import numpy as np
import pytest

from catalog import DEFAULT_SUBJECTS, generate_demo_students, get_subject
from conftest import make_marks, make_student
from roster_service import (
    attach_prediction, build_student, component_averages, filter_students, predict_roster, replace_marks,
    risk_counts
)
from roster_store import InMemoryRosterStore, RosterStore, merge_by_pin
from schemas import Prediction
from sgpa_predictor_api import StudentPerformancePredictor


def with_risk(student, risk):
    prediction = Prediction(student_id=student.pin, expected_sgpa=5.0, risk_status=risk, confidence=0.5)
    return student.model_copy(update={"prediction": prediction})


# -------------------------
# Catalog / demo roster
# -------------------------

def test_get_subject():
    assert get_subject(DEFAULT_SUBJECTS, "sub2").code == "CS402"
    assert get_subject(DEFAULT_SUBJECTS, "sub9") is None


def test_demo_students_are_reproducible():
    first = generate_demo_students(5, rng=np.random.default_rng(4))
    second = generate_demo_students(5, rng=np.random.default_rng(4))

    assert [s.model_dump() for s in first] == [s.model_dump() for s in second]


def test_demo_students_shape():
    students = generate_demo_students(17, rng=np.random.default_rng(0))

    assert len(students) == 17
    assert students[0].pin == "CS2021001"
    assert students[0].name == "Alice Johnson 1"
    assert students[15].name == "Alice Johnson 16"
    assert students[16].email == "cs2021017@university.edu"
    for student in students:
        assert student.prediction is None
        assert [m.subject_id for m in student.marks] == [s.id for s in DEFAULT_SUBJECTS]
        for mark in student.marks:
            caps = get_subject(DEFAULT_SUBJECTS, mark.subject_id).max_marks
            assert 0 < mark.mid1 <= caps.mid1
            assert 0 < mark.end_sem <= caps.end_sem
            assert 70 <= mark.attendance < 100
            assert 60 <= mark.assignment_completion < 100


# -------------------------
# Student helpers
# -------------------------

def test_build_student_tags_marks_with_pin():
    student = build_student("CS2021042", "Nina Hernandez", [make_marks(student_id="")])

    assert student.id == "CS2021042"
    assert student.email == "cs2021042@university.edu"
    assert student.semester == 6
    assert student.marks[0].student_id == "CS2021042"


def test_replace_marks_drops_stale_prediction(predictor, subjects):
    student = attach_prediction(make_student("CS2021001", marks=[make_marks()]), predictor, subjects)
    assert student.prediction is not None

    updated = replace_marks(student, [make_marks(mid1=1, mid2=1, internal=1, end_sem=1)])

    assert updated.prediction is None
    assert updated.marks[0].mid1 == 1
    assert student.prediction is not None


def test_attach_prediction_uses_current_marks(predictor, subjects):
    student = make_student("CS2021001", marks=[make_marks(mid1=5, mid2=5, internal=2, end_sem=10)])

    predicted = attach_prediction(student, predictor, subjects)

    assert predicted.prediction.risk_status == "high"
    assert student.prediction is None


def test_predict_roster_is_worker_count_independent(subjects):
    students = generate_demo_students(9, subjects, np.random.default_rng(30))

    serial = predict_roster(students, StudentPerformancePredictor.from_seed(5), subjects, max_workers=1)
    parallel = predict_roster(students, StudentPerformancePredictor.from_seed(5), subjects, max_workers=4)

    assert [s.pin for s in parallel] == [s.pin for s in students]
    assert [s.model_dump() for s in serial] == [s.model_dump() for s in parallel]


def test_predict_roster_empty(predictor, subjects):
    assert predict_roster([], predictor, subjects) == []


def test_filter_by_search_matches_name_or_pin():
    students = [
        make_student("CS2021001", name="Alice Johnson"),
        make_student("CS2021002", name="Bob Wilson"),
        make_student("EE2021003", name="Charlie Brown"),
    ]

    assert [s.pin for s in filter_students(students, search="alice")] == ["CS2021001"]
    assert [s.pin for s in filter_students(students, search="cs2021")] == ["CS2021001", "CS2021002"]
    assert filter_students(students, search="") == students


def test_filter_by_risk():
    students = [
        with_risk(make_student("A"), "high"),
        with_risk(make_student("B"), "low"),
        make_student("C"),
    ]

    assert [s.pin for s in filter_students(students, risk="high")] == ["A"]
    assert len(filter_students(students, risk="all")) == 3
    assert filter_students(students, search="b", risk="high") == []


def test_risk_counts_skip_unpredicted():
    students = [
        with_risk(make_student("A"), "high"),
        with_risk(make_student("B"), "high"),
        with_risk(make_student("C"), "medium"),
        make_student("D"),
    ]

    assert risk_counts(students) == {"high": 2, "medium": 1, "low": 0}


# -------------------------
# Store
# -------------------------

def test_merge_replaces_by_pin_and_appends():
    existing = [make_student("A", name="Old A"), make_student("B")]
    incoming = [make_student("C"), make_student("A", name="New A")]

    merged = merge_by_pin(existing, incoming)

    assert [s.pin for s in merged] == ["A", "B", "C"]
    assert merged[0].name == "New A"


def test_in_memory_store_falls_back_to_seed():
    store = InMemoryRosterStore(seed_roster=[make_student("SEED")])

    assert [s.pin for s in store.get_roster()] == ["SEED"]

    store.save_roster([make_student("X")])
    assert [s.pin for s in store.get_roster()] == ["X"]


def test_upsert_keeps_seed_students():
    store = InMemoryRosterStore(seed_roster=[make_student("A"), make_student("B")])

    store.upsert([make_student("B", name="Replaced"), make_student("C")])

    roster = store.get_roster()
    assert [s.pin for s in roster] == ["A", "B", "C"]
    assert store.get_student("B").name == "Replaced"
    assert store.get_student("Z") is None


def test_joblib_store_round_trip(tmp_path, predictor, subjects):
    path = tmp_path / "nested" / "roster.joblib"
    store = RosterStore(str(path))
    student = attach_prediction(make_student("CS2021001", marks=[make_marks()]), predictor, subjects)

    assert store.get_roster() == []

    store.save_roster([student])

    assert path.exists()
    reloaded = RosterStore(str(path)).get_roster()
    assert reloaded[0].model_dump() == student.model_dump()
    assert reloaded[0].prediction.expected_sgpa == pytest.approx(9.0)


def test_lookup_by_email():
    store = InMemoryRosterStore(seed_roster=[make_student("CS2021001"), make_student("CS2021002")])

    assert store.get_student_by_email("cs2021002@university.edu").pin == "CS2021002"
    assert store.get_student_by_email("someone@else.edu") is None


def test_modify_blocks_concurrent_writes():
    store = InMemoryRosterStore(seed_roster=[make_student("A")])
    writer_done = []

    def concurrent_upload():
        store.upsert([make_student("LATE")])
        writer_done.append(True)

    def update(roster):
        writer = threading.Thread(target=concurrent_upload)
        writer.start()
        writer.join(timeout=0.2)
        assert writer.is_alive()
        update.writer = writer
        return [s.model_copy(update={"name": "Updated"}) for s in roster]

    store.modify(update)
    update.writer.join(timeout=5)

    assert writer_done == [True]
    assert [s.pin for s in store.get_roster()] == ["A", "LATE"]
    assert store.get_student("A").name == "Updated"


# -------------------------
# Student view
# -------------------------

def test_component_averages(subjects):
    marks = [
        make_marks("sub1", mid1=10, mid2=20, internal=5, end_sem=25),
        make_marks("sub2", mid1=20, mid2=10, internal=10, end_sem=50),
    ]

    averages = component_averages(marks, subjects)

    assert averages == pytest.approx({"mid1": 75.0, "mid2": 75.0, "internal": 75.0, "endSem": 75.0})


def test_component_averages_count_unmatched_records_in_denominator(subjects):
    marks = [
        make_marks("sub1", mid1=20, mid2=20, internal=10, end_sem=50),
        make_marks("not-in-catalog", mid1=20, mid2=20, internal=10, end_sem=50),
    ]

    assert component_averages(marks, subjects) == pytest.approx(
        {"mid1": 50.0, "mid2": 50.0, "internal": 50.0, "endSem": 50.0}
    )


def test_component_averages_without_marks(subjects):
    assert component_averages([], subjects) == {"mid1": 0.0, "mid2": 0.0, "internal": 0.0, "endSem": 0.0}
