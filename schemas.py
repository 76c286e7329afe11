"""
Typed records shared by the predictor, the analytics aggregator and the API.

Attribute names are snake_case in Python and camelCase on the wire
(``maxMarks``, ``endSem``, ``expectedSGPA`` ...), so payloads produced by the
dashboard front end validate without any renaming.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RiskStatus = Literal["low", "medium", "high"]

DEFAULT_ATTENDANCE = 85.0
DEFAULT_ASSIGNMENT_COMPLETION = 85.0


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------------------------
# Reference data
# -------------------------

class MaxMarks(CamelModel):
    model_config = ConfigDict(frozen=True)

    mid1: float = Field(..., gt=0)
    mid2: float = Field(..., gt=0)
    internal: float = Field(..., gt=0)
    end_sem: float = Field(..., gt=0)

    @property
    def total(self) -> float:
        return self.mid1 + self.mid2 + self.internal + self.end_sem


class Subject(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    max_marks: MaxMarks


# -------------------------
# Inputs
# -------------------------

class StudentMarks(CamelModel):
    """One student's raw component scores for one subject."""

    student_id: str = ""
    subject_id: str
    mid1: float = Field(..., ge=0)
    mid2: float = Field(..., ge=0)
    internal: float = Field(..., ge=0)
    end_sem: float = Field(..., ge=0)
    attendance: float = Field(DEFAULT_ATTENDANCE, ge=0, le=100)
    assignment_completion: float = Field(DEFAULT_ASSIGNMENT_COMPLETION, ge=0, le=100)

    @property
    def total(self) -> float:
        return self.mid1 + self.mid2 + self.internal + self.end_sem

    def is_complete(self) -> bool:
        """True when every component has a strictly positive score."""
        return self.mid1 > 0 and self.mid2 > 0 and self.internal > 0 and self.end_sem > 0


# -------------------------
# Predictor output
# -------------------------

class SubjectFeedback(CamelModel):
    subject_id: str
    prediction: float
    feedback: str
    improvement: str


class Prediction(CamelModel):
    student_id: str
    expected_sgpa: float = Field(..., ge=0, le=10, alias="expectedSGPA")
    risk_status: RiskStatus
    confidence: float = Field(..., ge=0, le=1)
    feedback: List[str] = Field(default_factory=list)
    subject_wise_feedback: List[SubjectFeedback] = Field(default_factory=list)


class Student(CamelModel):
    id: str
    pin: str
    name: str
    email: str
    semester: int = 6
    marks: List[StudentMarks] = Field(default_factory=list)
    prediction: Optional[Prediction] = None


# -------------------------
# Aggregator output
# -------------------------

class SubjectPerformance(CamelModel):
    subject_id: str
    average: float
    pass_rate: float


class SGPABucket(BaseModel):
    range: str
    count: int


class AnalyticsData(CamelModel):
    total_students: int
    at_risk_students: int
    average_sgpa: float = Field(..., alias="averageSGPA")
    subject_wise_performance: List[SubjectPerformance]
    sgpa_distribution: List[SGPABucket]


# -------------------------
# API payloads
# -------------------------

class StudentUpload(CamelModel):
    """A processed mark-sheet row: one student with all of their subject marks."""

    pin: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    semester: int = Field(6, ge=1)
    marks: List[StudentMarks]
