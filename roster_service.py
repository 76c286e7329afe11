"""
Roster-level operations built on the predictor: attaching predictions,
replacing marks, building students from uploaded rows, the search / risk
filters used by the faculty results view, and the per-component averages
shown on the student dashboard.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from catalog import DEMO_SEMESTER, index_subjects, student_email
from schemas import Student, StudentMarks, Subject
from sgpa_predictor_api import StudentPerformancePredictor

logger = logging.getLogger(__name__)

RISK_LEVELS = ("high", "medium", "low")


def attach_prediction(
    student: Student,
    predictor: StudentPerformancePredictor,
    subjects: Sequence[Subject]
) -> Student:
    """Copy of the student carrying a fresh prediction for its current marks"""
    prediction = predictor.predict(student.marks, subjects)
    return student.model_copy(update={"prediction": prediction})


def replace_marks(student: Student, marks: Sequence[StudentMarks]) -> Student:
    """Copy of the student with new marks; the old prediction is stale and dropped"""
    tagged = [mark.model_copy(update={"student_id": student.pin}) for mark in marks]
    return student.model_copy(update={"marks": tagged, "prediction": None})


def build_student(
    pin: str,
    name: str,
    marks: Sequence[StudentMarks],
    semester: int = DEMO_SEMESTER
) -> Student:
    """New student keyed by pin, with every mark record tagged to that pin"""
    return Student(
        id=pin,
        pin=pin,
        name=name,
        email=student_email(pin),
        semester=semester,
        marks=[mark.model_copy(update={"student_id": pin}) for mark in marks],
    )


def predict_roster(
    students: Sequence[Student],
    predictor: StudentPerformancePredictor,
    subjects: Sequence[Subject],
    max_workers: int = 1
) -> List[Student]:
    """
    Attach predictions to every student, preserving order.

    Each student gets its own child predictor, so a seeded predictor gives
    the same output whatever the worker count.
    """
    if not students:
        return []

    workers = predictor.spawn(len(students))
    if max_workers <= 1:
        results = [attach_prediction(s, p, subjects) for s, p in zip(students, workers)]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(
                lambda pair: attach_prediction(pair[0], pair[1], subjects),
                zip(students, workers),
            ))

    logger.info("Generated predictions for %d students", len(results))
    return results


def filter_students(
    students: Sequence[Student],
    search: Optional[str] = None,
    risk: Optional[str] = None
) -> List[Student]:
    """
    Case-insensitive substring search on name or pin, then an optional risk
    filter. ``risk`` of None or "all" keeps everyone; any other value keeps
    only predicted students with that risk status.
    """
    filtered = list(students)

    if search:
        term = search.lower()
        filtered = [
            s for s in filtered
            if term in s.name.lower() or term in s.pin.lower()
        ]

    if risk and risk != "all":
        filtered = [
            s for s in filtered
            if s.prediction is not None and s.prediction.risk_status == risk
        ]

    return filtered


def risk_counts(students: Sequence[Student]) -> Dict[str, int]:
    counts = {level: 0 for level in RISK_LEVELS}
    for student in students:
        if student.prediction is not None:
            counts[student.prediction.risk_status] += 1
    return counts


# -------------------------
# Student view
# -------------------------

# attribute name -> wire name
COMPONENTS = {
    "mid1": "mid1",
    "mid2": "mid2",
    "internal": "internal",
    "end_sem": "endSem",
}


def component_averages(marks: Sequence[StudentMarks], subjects: Sequence[Subject]) -> Dict[str, float]:
    """
    Average percentage per assessment component across a student's subjects.

    Records for subjects missing from the catalog add nothing but still count
    in the denominator, which is the number of records. No records gives 0.
    """
    catalog = index_subjects(subjects)
    averages = {}

    for attr, label in COMPONENTS.items():
        total = 0.0
        for mark in marks:
            subject = catalog.get(mark.subject_id)
            if subject is None:
                continue
            total += getattr(mark, attr) / getattr(subject.max_marks, attr) * 100
        averages[label] = total / len(marks) if marks else 0.0

    return averages
