"""
Cohort analytics over a roster snapshot.

Only students that already carry a prediction are counted. Results are
recomputed on every call and never stored.
"""

import logging
from typing import List, Optional, Sequence

import pandas as pd

from schemas import AnalyticsData, SGPABucket, Student, Subject, SubjectPerformance
from sgpa_predictor_api import CRITICAL_BELOW, calculate_subject_percentage

logger = logging.getLogger(__name__)

AT_RISK_STATUSES = ("high", "medium")

# Inclusive on both ends and compared literally, so scores such as 8.95
# land in no bucket
SGPA_RANGES = [
    ("9.0-10.0", 9.0, 10.0),
    ("8.0-8.9", 8.0, 8.9),
    ("7.0-7.9", 7.0, 7.9),
    ("6.0-6.9", 6.0, 6.9),
    ("5.0-5.9", 5.0, 5.9),
    ("0.0-4.9", 0.0, 4.9),
]


def subject_percentage_table(students: Sequence[Student], subjects: Sequence[Subject]) -> pd.DataFrame:
    """
    One row per student, one column per catalog entry (in catalog order,
    labelled by subject id), holding the student's percentage in that subject
    (0.0 when they have no record). Repeated ids give repeated columns, so
    select by position.
    """
    rows = []
    for student in students:
        row = []
        for subject in subjects:
            mark = next((m for m in student.marks if m.subject_id == subject.id), None)
            row.append(calculate_subject_percentage(mark, subject) if mark is not None else 0.0)
        rows.append(row)

    return pd.DataFrame(
        rows,
        columns=[subject.id for subject in subjects],
        index=[student.pin for student in students],
        dtype=float,
    )


def sgpa_distribution(scores: pd.Series) -> List[SGPABucket]:
    return [
        SGPABucket(range=label, count=int(((scores >= low) & (scores <= high)).sum()))
        for label, low, high in SGPA_RANGES
    ]


def summarize(roster: Sequence[Student], subjects: Sequence[Subject]) -> Optional[AnalyticsData]:
    """
    Aggregate the predicted students of a roster.

    Returns:
        AnalyticsData, or None when no student has a prediction yet
    """
    predicted = [student for student in roster if student.prediction is not None]
    if not predicted:
        logger.info("No predicted students in roster of %d; analytics unavailable", len(roster))
        return None

    total_students = len(predicted)
    scores = pd.Series([s.prediction.expected_sgpa for s in predicted], dtype=float)
    at_risk = sum(1 for s in predicted if s.prediction.risk_status in AT_RISK_STATUSES)

    # Students without a record count as 0%, and the denominator is always
    # the full predicted cohort
    percentages = subject_percentage_table(predicted, subjects)
    subject_wise = []
    for position, subject in enumerate(subjects):
        column = percentages.iloc[:, position]
        subject_wise.append(SubjectPerformance(
            subject_id=subject.id,
            average=float(column.sum() / total_students),
            pass_rate=float((column >= CRITICAL_BELOW).sum() / total_students * 100),
        ))

    return AnalyticsData(
        total_students=total_students,
        at_risk_students=at_risk,
        average_sgpa=float(scores.sum() / total_students),
        subject_wise_performance=subject_wise,
        sgpa_distribution=sgpa_distribution(scores),
    )
