"""
SGPA Risk Prediction Engine
===========================
Turns a student's per-subject mark records into an expected SGPA, a risk
category, a confidence value and human-readable feedback.

The score itself is a weighted heuristic over mid-term, internal and end
semester ratios. Two terms are random on purpose: the per-subject predicted
percentage carries a jitter drawn from [-5, 5), and the confidence carries a
[0, 0.1) noise term. Both come from the generator handed to the predictor, so
a seeded generator gives reproducible output.

Author: SGPA Risk Dashboard Development Team
"""

import json
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from catalog import DEFAULT_SUBJECTS, index_subjects
from schemas import Prediction, RiskStatus, StudentMarks, Subject, SubjectFeedback

logger = logging.getLogger(__name__)

# -------------------------
# CONFIGURATION
# -------------------------

# Component weights (sum to 1.0)
WEIGHTS = {
    "mid1": 0.20,
    "mid2": 0.25,
    "internal": 0.15,
    "end_sem": 0.40,
}

SGPA_SCALE = 10.0

# Risk thresholds on the 0-10 scale, lower bound inclusive
LOW_RISK_MIN_SGPA = 7.5
MEDIUM_RISK_MIN_SGPA = 6.0

# Subject percentage bands
CRITICAL_BELOW = 40.0
WARNING_BELOW = 60.0
GOOD_BELOW = 80.0

# Noise terms
JITTER_LOW, JITTER_HIGH = -5.0, 5.0
CONFIDENCE_NOISE = 0.1
INCOMPLETE_RECORD_WEIGHT = 0.5

HEADLINE_FEEDBACK = {
    "high": "⚠️ High risk of poor performance. Immediate attention needed.",
    "medium": "⚡ Moderate risk. Focus on improving weak areas.",
    "low": "✅ Good performance. Keep up the excellent work!",
}

# (upper bound, feedback, improvement), checked in order
SUBJECT_BANDS = [
    (CRITICAL_BELOW,
     "Critical performance in {name}. Focus on fundamentals.",
     "Aim to improve by at least 20 points to reach passing grade."),
    (WARNING_BELOW,
     "Below average performance in {name}.",
     "Focus on end semester preparation to improve by 10-15 points."),
    (GOOD_BELOW,
     "Good performance in {name}.",
     "With consistent effort, you can achieve distinction."),
    (float("inf"),
     "Excellent performance in {name}!",
     "Maintain this level and help peers in this subject."),
]


# -------------------------
# SCORE HELPERS
# -------------------------

def calculate_subject_percentage(mark: StudentMarks, subject: Subject) -> float:
    """Raw total as a percentage of the subject's total cap"""
    return (mark.total / subject.max_marks.total) * 100


def weighted_fraction(mark: StudentMarks, subject: Subject) -> float:
    """Weighted sum of component/cap ratios, in [0, 1] for in-range marks"""
    caps = subject.max_marks
    return (
        (mark.mid1 / caps.mid1) * WEIGHTS["mid1"] +
        (mark.mid2 / caps.mid2) * WEIGHTS["mid2"] +
        (mark.internal / caps.internal) * WEIGHTS["internal"] +
        (mark.end_sem / caps.end_sem) * WEIGHTS["end_sem"]
    )


def calculate_risk_status(sgpa: float) -> RiskStatus:
    if sgpa >= LOW_RISK_MIN_SGPA:
        return "low"
    if sgpa >= MEDIUM_RISK_MIN_SGPA:
        return "medium"
    return "high"


def subject_band(percentage: float):
    for upper, feedback, improvement in SUBJECT_BANDS:
        if percentage < upper:
            return feedback, improvement
    # NaN falls through every comparison
    return SUBJECT_BANDS[-1][1], SUBJECT_BANDS[-1][2]


# -------------------------
# PREDICTOR
# -------------------------

class StudentPerformancePredictor:
    """
    Weighted-scoring SGPA predictor.

    The instance holds nothing but its random source, so one predictor can
    serve many students; use ``spawn`` to hand independent generators to
    parallel workers.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def from_seed(cls, seed: Optional[int]) -> "StudentPerformancePredictor":
        return cls(np.random.default_rng(seed))

    def spawn(self, n: int) -> List["StudentPerformancePredictor"]:
        """Independent child predictors, reproducible when this one is seeded"""
        return [StudentPerformancePredictor(child) for child in self.rng.spawn(n)]

    def predict_sgpa(self, marks: Sequence[StudentMarks], subjects: Sequence[Subject]) -> float:
        """
        Average weighted fraction over the records whose subject is in the
        catalog, scaled to 0-10. Unknown subjects are skipped.
        """
        if not marks:
            return 0.0

        catalog = index_subjects(subjects)
        total_weighted_score = 0.0
        matched = 0

        for mark in marks:
            subject = catalog.get(mark.subject_id)
            if subject is None:
                continue
            total_weighted_score += weighted_fraction(mark, subject)
            matched += 1

        if matched == 0:
            logger.debug("No mark record matched the subject catalog")
            return 0.0

        average_score = total_weighted_score / matched
        return float(np.clip(average_score * SGPA_SCALE, 0.0, SGPA_SCALE))

    def calculate_risk_status(self, sgpa: float) -> RiskStatus:
        return calculate_risk_status(sgpa)

    def generate_feedback(
        self,
        marks: Sequence[StudentMarks],
        subjects: Sequence[Subject],
        sgpa: float
    ) -> List[str]:
        """Headline line for the risk status, then one line per weak subject"""
        if not marks:
            return []

        feedback = [HEADLINE_FEEDBACK[calculate_risk_status(sgpa)]]
        catalog = index_subjects(subjects)

        for mark in marks:
            subject = catalog.get(mark.subject_id)
            if subject is None:
                continue

            percentage = calculate_subject_percentage(mark, subject)
            if percentage < CRITICAL_BELOW:
                feedback.append(f"🔴 Critical: {subject.name} needs immediate attention ({percentage:.1f}%)")
            elif percentage < WARNING_BELOW:
                feedback.append(f"🟡 Warning: Improve {subject.name} performance ({percentage:.1f}%)")

        return feedback

    def generate_subject_wise_feedback(
        self,
        marks: Sequence[StudentMarks],
        subjects: Sequence[Subject]
    ) -> List[SubjectFeedback]:
        """
        One entry per catalog-matched record, in input order.

        ``prediction`` is the current percentage plus a uniform jitter in
        [-5, 5), capped at 100 but not floored. Bands use the un-jittered
        percentage.
        """
        catalog = index_subjects(subjects)
        results = []

        for mark in marks:
            subject = catalog.get(mark.subject_id)
            if subject is None:
                continue

            current_percentage = calculate_subject_percentage(mark, subject)
            jitter = self.rng.uniform(JITTER_LOW, JITTER_HIGH)
            prediction = min(current_percentage + jitter, 100.0)
            feedback, improvement = subject_band(current_percentage)

            results.append(SubjectFeedback(
                subject_id=mark.subject_id,
                prediction=float(prediction),
                feedback=feedback.format(name=subject.name),
                improvement=improvement,
            ))

        return results

    def calculate_completeness(self, marks: Sequence[StudentMarks]) -> float:
        """Mean record weight over all records: 1 if complete, 0.5 otherwise"""
        if not marks:
            return 0.0
        weights = [1.0 if mark.is_complete() else INCOMPLETE_RECORD_WEIGHT for mark in marks]
        return float(np.mean(weights))

    def calculate_confidence(self, marks: Sequence[StudentMarks]) -> float:
        """
        ``completeness * 0.9`` plus a uniform [0, 0.1) noise term, capped at 1.
        Deliberately noisy: only the bound is guaranteed.
        """
        completeness = self.calculate_completeness(marks)
        return min(completeness * 0.9 + self.rng.random() * CONFIDENCE_NOISE, 1.0)

    def predict(self, marks: Sequence[StudentMarks], subjects: Sequence[Subject]) -> Prediction:
        """
        Main API function to predict a student's performance

        Args:
            marks: The student's mark records, one per subject taken
            subjects: The subject catalog

        Returns:
            Prediction tagged with the first record's student id
        """
        sgpa = self.predict_sgpa(marks, subjects)
        risk_status = calculate_risk_status(sgpa)
        feedback = self.generate_feedback(marks, subjects, sgpa)
        subject_wise_feedback = self.generate_subject_wise_feedback(marks, subjects)
        confidence = self.calculate_confidence(marks)

        student_id = marks[0].student_id if marks else ""
        logger.debug("Predicted %s: sgpa=%.2f risk=%s", student_id or "<empty>", sgpa, risk_status)

        return Prediction(
            student_id=student_id,
            expected_sgpa=sgpa,
            risk_status=risk_status,
            confidence=confidence,
            feedback=feedback,
            subject_wise_feedback=subject_wise_feedback,
        )


def predict(
    marks: Sequence[StudentMarks],
    subjects: Sequence[Subject] = DEFAULT_SUBJECTS,
    rng: Optional[np.random.Generator] = None
) -> Prediction:
    """Convenience wrapper around a one-off predictor"""
    return StudentPerformancePredictor(rng).predict(marks, subjects)


# -------------------------
# EXAMPLE USAGE
# -------------------------

if __name__ == "__main__":

    print("=" * 80)
    print("SGPA RISK PREDICTION ENGINE - EXAMPLES")
    print("=" * 80)

    predictor = StudentPerformancePredictor.from_seed(42)

    examples: Dict[str, List[StudentMarks]] = {
        "Strong student (CS401)": [
            StudentMarks(student_id="CS2021001", subject_id="sub1", mid1=18, mid2=18, internal=9, end_sem=45),
        ],
        "Struggling student (CS401)": [
            StudentMarks(student_id="CS2021002", subject_id="sub1", mid1=5, mid2=5, internal=2, end_sem=10),
        ],
        "Mixed student (CS401 + CS402)": [
            StudentMarks(student_id="CS2021003", subject_id="sub1", mid1=14, mid2=12, internal=7, end_sem=30),
            StudentMarks(student_id="CS2021003", subject_id="sub2", mid1=8, mid2=9, internal=5, end_sem=25),
        ],
    }

    for title, marks in examples.items():
        print(f"\n{title}")
        print("-" * 80)
        result = predictor.predict(marks, DEFAULT_SUBJECTS)
        print(json.dumps(result.model_dump(by_alias=True), indent=2, ensure_ascii=False))
