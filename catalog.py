"""
Subject catalog and demo roster.

The catalog is the fixed, ordered list of subjects used for the whole
session. ``generate_demo_students`` builds the sample roster the dashboard
starts from before any mark sheet has been uploaded.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np

from schemas import MaxMarks, Student, StudentMarks, Subject

# -------------------------
# CONFIGURATION
# -------------------------

STANDARD_MAX_MARKS = MaxMarks(mid1=20, mid2=20, internal=10, end_sem=50)

DEFAULT_SUBJECTS: List[Subject] = [
    Subject(id="sub1", code="CS401", name="Data Structures and Algorithms", max_marks=STANDARD_MAX_MARKS),
    Subject(id="sub2", code="CS402", name="Database Management Systems", max_marks=STANDARD_MAX_MARKS),
    Subject(id="sub3", code="CS403", name="Computer Networks", max_marks=STANDARD_MAX_MARKS),
    Subject(id="sub4", code="CS404", name="Software Engineering", max_marks=STANDARD_MAX_MARKS),
    Subject(id="sub5", code="CS405", name="Machine Learning", max_marks=STANDARD_MAX_MARKS),
]

DEMO_NAMES = [
    "Alice Johnson", "Bob Wilson", "Charlie Brown", "Diana Prince", "Edward Smith",
    "Fiona Davis", "George Miller", "Hannah Garcia", "Ivan Rodriguez", "Julia Martinez",
    "Kevin Anderson", "Laura Taylor", "Michael Thomas", "Nina Hernandez", "Oliver Moore",
]

DEMO_SEMESTER = 6
EMAIL_DOMAIN = "university.edu"


# -------------------------
# LOOKUP
# -------------------------

def index_subjects(subjects: Sequence[Subject]) -> Dict[str, Subject]:
    """Map subject id -> subject, keeping the first entry for duplicated ids"""
    index = {}
    for subject in subjects:
        index.setdefault(subject.id, subject)
    return index


def get_subject(subjects: Sequence[Subject], subject_id: str) -> Optional[Subject]:
    for subject in subjects:
        if subject.id == subject_id:
            return subject
    return None


def student_email(pin: str) -> str:
    return f"{pin.lower()}@{EMAIL_DOMAIN}"


# -------------------------
# DEMO ROSTER
# -------------------------

def _demo_component(rng: np.random.Generator, cap: float) -> float:
    # At least 10% of the cap, at most floor(0.9 * cap) above that
    return float(np.floor(rng.random() * cap * 0.9) + cap * 0.1)


def generate_demo_students(
    count: int = 70,
    subjects: Sequence[Subject] = DEFAULT_SUBJECTS,
    rng: Optional[np.random.Generator] = None
) -> List[Student]:
    """
    Generate a sample roster with marks for every catalog subject.

    Args:
        count: Number of students to generate
        subjects: Catalog to generate marks for
        rng: Random source; pass a seeded generator for a reproducible roster

    Returns:
        Students without predictions attached
    """
    rng = rng if rng is not None else np.random.default_rng()
    students = []

    for i in range(count):
        student_id = f"student_{i + 1}"
        pin = f"CS2021{i + 1:03d}"
        name = f"{DEMO_NAMES[i % len(DEMO_NAMES)]} {i + 1}"

        marks = [
            StudentMarks(
                student_id=student_id,
                subject_id=subject.id,
                mid1=_demo_component(rng, subject.max_marks.mid1),
                mid2=_demo_component(rng, subject.max_marks.mid2),
                internal=_demo_component(rng, subject.max_marks.internal),
                end_sem=_demo_component(rng, subject.max_marks.end_sem),
                attendance=float(rng.integers(70, 100)),
                assignment_completion=float(rng.integers(60, 100)),
            )
            for subject in subjects
        ]

        students.append(Student(
            id=student_id,
            pin=pin,
            name=name,
            email=student_email(pin),
            semester=DEMO_SEMESTER,
            marks=marks,
        ))

    return students
