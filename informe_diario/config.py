from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_json_model: str = os.getenv("GEMINI_JSON_MODEL", "gemini-2.5-pro")
    gemini_api_base: str = os.getenv(
        "GEMINI_API_BASE",
        "https://generativelanguage.googleapis.com/v1beta/models",
    )
    gemini_timeout_seconds: float = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "120"))

    # HTTP
    max_upload_mb: float = float(os.getenv("MAX_UPLOAD_MB", "20"))
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "*")

    # Firebase
    firebase_credentials_path: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "firebase-admin-key.json")
    firebase_project_id: str = os.getenv("FIREBASE_PROJECT_ID", "informe-diario")


settings = Settings()
