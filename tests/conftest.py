import numpy as np
import pytest

from catalog import DEFAULT_SUBJECTS
from schemas import MaxMarks, Student, StudentMarks, Subject
from sgpa_predictor_api import StudentPerformancePredictor


@pytest.fixture()
def subjects():
    return list(DEFAULT_SUBJECTS)


@pytest.fixture()
def cs401():
    return Subject(
        id="sub1",
        code="CS401",
        name="Data Structures and Algorithms",
        max_marks=MaxMarks(mid1=20, mid2=20, internal=10, end_sem=50),
    )


@pytest.fixture()
def predictor():
    return StudentPerformancePredictor(np.random.default_rng(1234))


def make_marks(subject_id="sub1", mid1=18, mid2=18, internal=9, end_sem=45, student_id="CS2021001"):
    return StudentMarks(
        student_id=student_id,
        subject_id=subject_id,
        mid1=mid1,
        mid2=mid2,
        internal=internal,
        end_sem=end_sem,
    )


def make_student(pin, name="Test Student", marks=None, prediction=None):
    return Student(
        id=pin,
        pin=pin,
        name=name,
        email=f"{pin.lower()}@university.edu",
        semester=6,
        marks=marks or [],
        prediction=prediction,
    )
