"""Firestore client for user settings and extraction history.

Collections:
    user_settings/{uid}                          geminiApiKey, columnPreferences, privacySettings
    users/{uid}/extraction_history/{id}          fileName, extractionDate, data
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials, firestore

from informe_diario.config import settings
from informe_diario.models import ExtractionResult, HistoryRecord, PrivacySettings, UserSettings

logger = logging.getLogger(__name__)

_db = None


def _ensure_app() -> None:
    """Initialize Firebase Admin once.

    Uses the key file locally or Application Default Credentials when it is
    absent (Cloud Run).
    """
    if firebase_admin._apps:
        return
    key_path = settings.firebase_credentials_path
    if key_path and os.path.exists(key_path):
        cred = credentials.Certificate(key_path)
        firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
    else:
        firebase_admin.initialize_app(options={"projectId": settings.firebase_project_id})


def _get_db():
    global _db
    if _db is not None:
        return _db
    _ensure_app()
    _db = firestore.client()
    return _db


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def verify_user_token(id_token: str) -> str:
    """Verify a Firebase ID token and return the user's uid."""
    _ensure_app()
    decoded = auth.verify_id_token(id_token)
    return decoded["uid"]


# ---------------------------------------------------------------------------
# User settings
# ---------------------------------------------------------------------------

def _settings_ref(uid: str):
    return _get_db().collection("user_settings").document(uid)


def get_or_create_user_settings(uid: str) -> UserSettings:
    ref = _settings_ref(uid)
    doc = ref.get()
    if doc.exists:
        return UserSettings.model_validate(doc.to_dict() or {})

    fresh = UserSettings()
    data = fresh.as_wire()
    data["createdAt"] = _now_iso()
    ref.set(data)
    logger.info("Created settings document for user %s", uid)
    return fresh


def update_api_key(uid: str, api_key: str | None) -> UserSettings:
    ref = _settings_ref(uid)
    ref.set({"geminiApiKey": api_key or None, "updatedAt": _now_iso()}, merge=True)
    return get_or_create_user_settings(uid)


def update_preferences(
    uid: str,
    column_preferences: dict[str, bool] | None = None,
    privacy_settings: PrivacySettings | None = None,
) -> UserSettings:
    data: dict[str, Any] = {"updatedAt": _now_iso()}
    if column_preferences is not None:
        data["columnPreferences"] = column_preferences
    if privacy_settings is not None:
        data["privacySettings"] = privacy_settings.as_wire()
    _settings_ref(uid).set(data, merge=True)
    return get_or_create_user_settings(uid)


# ---------------------------------------------------------------------------
# Extraction history
# ---------------------------------------------------------------------------

def _history(uid: str):
    return _get_db().collection("users").document(uid).collection("extraction_history")


def _to_record(doc) -> HistoryRecord:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return HistoryRecord.model_validate(data)


def save_extraction(uid: str, file_name: str, result: ExtractionResult) -> HistoryRecord:
    data = {
        "fileName": file_name,
        "extractionDate": _now_iso(),
        "data": result.as_wire(),
    }
    _, doc_ref = _history(uid).add(data)
    return HistoryRecord.model_validate({**data, "id": doc_ref.id})


def list_extractions(uid: str, search: str | None = None, limit: int = 100) -> list[HistoryRecord]:
    docs = (
        _history(uid)
        .order_by("extractionDate", direction=firestore.Query.DESCENDING)
        .limit(max(1, min(limit, 500)))
        .get()
    )
    records = [_to_record(doc) for doc in docs]
    if search:
        needle = search.lower()
        records = [record for record in records if needle in record.file_name.lower()]
    return records


def get_extraction(uid: str, extraction_id: str) -> HistoryRecord | None:
    doc = _history(uid).document(extraction_id).get()
    if not doc.exists:
        return None
    return _to_record(doc)


def delete_extraction(uid: str, extraction_id: str) -> bool:
    ref = _history(uid).document(extraction_id)
    if not ref.get().exists:
        return False
    ref.delete()
    return True
