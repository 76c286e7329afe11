"""
SGPA Risk Prediction API (FastAPI Version)
==========================================
JSON API behind the faculty and student dashboards: per-student predictions,
the stored roster and cohort analytics.

Usage:
    uvicorn fastapi_app:app --reload

Author: SGPA Risk Dashboard Development Team
"""

import logging
import time
from functools import lru_cache
from typing import Any, List, Optional

import numpy as np
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from catalog import DEFAULT_SUBJECTS, generate_demo_students
from cohort_analytics import summarize
from logging_config import setup_logging
from roster_service import (
    attach_prediction, build_student, component_averages, filter_students, predict_roster, replace_marks,
    risk_counts
)
from roster_store import BaseRosterStore, RosterStore
from schemas import StudentMarks, StudentUpload
from settings import settings
from sgpa_predictor_api import StudentPerformancePredictor

setup_logging()
logger = logging.getLogger(__name__)


# -------------------------
# Exceptions
# -------------------------

class PredictionAPIException(HTTPException):
    """Base exception for the prediction API."""
    def __init__(self, status_code: int, detail: Any):
        super().__init__(status_code=status_code, detail=detail)


class StudentNotFound(PredictionAPIException):
    def __init__(self, **lookup: str):
        super().__init__(
            status_code=404,
            detail={"error": "Student not found", **lookup}
        )


# -------------------------
# Dependencies
# -------------------------

@lru_cache()
def get_store() -> BaseRosterStore:
    seed = generate_demo_students(
        settings.demo_student_count,
        DEFAULT_SUBJECTS,
        np.random.default_rng(settings.random_seed),
    )
    logger.info("Using roster file %s", settings.roster_path)
    return RosterStore(settings.roster_path, seed_roster=seed)


@lru_cache()
def get_predictor() -> StudentPerformancePredictor:
    return StudentPerformancePredictor.from_seed(settings.random_seed)


def get_subjects():
    return DEFAULT_SUBJECTS


# -------------------------
# FastAPI App Setup
# -------------------------

app = FastAPI(
    title=settings.app_name,
    description="Weighted-score SGPA prediction and cohort analytics for student mark sheets.",
    version=settings.app_version
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_request_time(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} - {process_time:.3f}s")
    return response


# -------------------------
# Endpoints
# -------------------------

@app.get("/")
def root():
    """Health check and API info"""
    return {
        "service": settings.app_name,
        "status": "active",
        "environment": settings.environment,
        "version": settings.app_version,
        "docs_url": "/docs"
    }


@app.get("/subjects")
def list_subjects(subjects=Depends(get_subjects)):
    return {
        "success": True,
        "data": [subject.model_dump(by_alias=True) for subject in subjects]
    }


@app.post("/predict")
def predict_student(
    marks: List[StudentMarks],
    predictor: StudentPerformancePredictor = Depends(get_predictor),
    subjects=Depends(get_subjects)
):
    """
    Predict SGPA, risk and feedback for one student's mark records.
    """
    try:
        prediction = predictor.predict(marks, subjects)
    except Exception as e:
        logger.exception("Prediction failed")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "data": prediction.model_dump(by_alias=True)
    }


@app.get("/students")
def list_students(
    search: Optional[str] = Query(None, description="Substring of name or PIN"),
    risk: Optional[str] = Query(None, pattern="^(all|low|medium|high)$"),
    store: BaseRosterStore = Depends(get_store)
):
    students = filter_students(store.get_roster(), search=search, risk=risk)
    return {
        "success": True,
        "data": {
            "total": len(students),
            "risk_counts": risk_counts(students),
            "students": [student.model_dump(by_alias=True) for student in students]
        }
    }


@app.get("/students/{pin}")
def get_student(pin: str, store: BaseRosterStore = Depends(get_store)):
    student = store.get_student(pin)
    if student is None:
        raise StudentNotFound(pin=pin)
    return {"success": True, "data": student.model_dump(by_alias=True)}


@app.post("/students")
def upload_students(
    rows: List[StudentUpload],
    store: BaseRosterStore = Depends(get_store),
    predictor: StudentPerformancePredictor = Depends(get_predictor),
    subjects=Depends(get_subjects)
):
    """
    Store processed mark-sheet rows with freshly generated predictions.
    Existing students with the same PIN are replaced.
    """
    try:
        students = [build_student(row.pin, row.name, row.marks, row.semester) for row in rows]
        students = predict_roster(students, predictor, subjects, settings.prediction_workers)
        store.upsert(students)
    except Exception as e:
        logger.exception("Processing uploaded rows failed")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "data": {
            "processed": len(students),
            "pins": [student.pin for student in students]
        }
    }


@app.put("/students/{pin}/marks")
def update_marks(
    pin: str,
    marks: List[StudentMarks],
    store: BaseRosterStore = Depends(get_store),
    predictor: StudentPerformancePredictor = Depends(get_predictor),
    subjects=Depends(get_subjects)
):
    updated = []

    def apply(roster):
        for i, student in enumerate(roster):
            if student.pin == pin:
                roster[i] = attach_prediction(replace_marks(student, marks), predictor, subjects)
                updated.append(roster[i])
                return roster
        raise StudentNotFound(pin=pin)

    store.modify(apply)
    return {"success": True, "data": updated[0].model_dump(by_alias=True)}


@app.post("/students/predict")
def predict_all(
    store: BaseRosterStore = Depends(get_store),
    predictor: StudentPerformancePredictor = Depends(get_predictor),
    subjects=Depends(get_subjects)
):
    """Recompute predictions for every stored student"""
    students = store.modify(
        lambda roster: predict_roster(roster, predictor, subjects, settings.prediction_workers)
    )
    return {
        "success": True,
        "data": {
            "processed": len(students),
            "risk_counts": risk_counts(students)
        }
    }


@app.get("/dashboard/student")
def student_dashboard(
    email: str = Query(..., min_length=1, description="The signed-in student's email"),
    store: BaseRosterStore = Depends(get_store),
    subjects=Depends(get_subjects)
):
    """A student's own record, prediction and per-component averages"""
    student = store.get_student_by_email(email)
    if student is None:
        raise StudentNotFound(email=email)

    return {
        "success": True,
        "data": {
            "student": student.model_dump(by_alias=True),
            "prediction": student.prediction.model_dump(by_alias=True) if student.prediction else None,
            "componentAverages": component_averages(student.marks, subjects)
        }
    }


@app.get("/analytics")
def get_analytics(
    store: BaseRosterStore = Depends(get_store),
    subjects=Depends(get_subjects)
):
    """Cohort analytics; ``data`` is null until some student has a prediction"""
    analytics = summarize(store.get_roster(), subjects)
    return {
        "success": True,
        "data": analytics.model_dump(by_alias=True) if analytics is not None else None
    }


if __name__ == "__main__":
    logger.info("Starting SGPA Risk Prediction API...")
    uvicorn.run("fastapi_app:app", host="0.0.0.0", port=8000, reload=True)
