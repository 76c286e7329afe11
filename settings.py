# settings.py
"""Application configuration using Pydantic."""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "SGPA Risk Prediction API"
    app_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"
    allowed_origins: List[str] = ["*"]

    # Roster persistence (joblib file) and demo seeding
    roster_path: str = "./data/roster.joblib"
    demo_student_count: int = 70

    # Fixed seed makes predictions reproducible; None draws fresh noise
    random_seed: Optional[int] = None
    prediction_workers: int = 4

    model_config = {
        "env_prefix": "SGPA_",
        "env_file": ".env",
        "extra": "ignore",
    }


settings = Settings()
