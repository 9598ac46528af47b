from __future__ import annotations

import logging
import threading
import unicodedata
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel

from informe_diario import firestore_client
from informe_diario.columns import COLUMNS, merge_preferences, preferences_to_store
from informe_diario.config import settings
from informe_diario.errors import (
    MalformedResponse,
    MissingCredential,
    ModelCallFailure,
    ModelCallTimeout,
    TextExtractionEmpty,
)
from informe_diario.gemini_client import GeminiClientFactory
from informe_diario.models import HistoryRecord, PrivacySettings, UserSettings
from informe_diario.pipeline import run_extraction
from informe_diario.prompts import RULESET_VERSION
from informe_diario.report import (
    ReportOptions,
    build_html_report,
    build_table_view,
    build_workbook,
    export_filename,
)

logger = logging.getLogger(__name__)

EXTRACTION_FAILED = "Extraction failed: the AI response could not be used. Please try again."

app = FastAPI(title="Informe Diario: IMSS consultation extractor", version="0.5.0")

# CORS for the web client
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.gemini_factory = GeminiClientFactory()
app.state.in_flight = set()
app.state.in_flight_lock = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════════════════

def get_store():
    return firestore_client


def get_client_factory(request: Request) -> GeminiClientFactory:
    return request.app.state.gemini_factory


def current_user(authorization: str | None = Header(default=None), store=Depends(get_store)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        return store.verify_user_token(authorization.split(" ", 1)[1].strip())
    except Exception as exc:  # noqa: BLE001
        logger.warning("Rejected ID token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid or expired token") from exc


@contextmanager
def _single_extraction(uid: str):
    state = app.state
    with state.in_flight_lock:
        if uid in state.in_flight:
            raise HTTPException(status_code=409, detail="An extraction is already in progress")
        state.in_flight.add(uid)
    try:
        yield
    finally:
        with state.in_flight_lock:
            state.in_flight.discard(uid)


def _get_record_or_404(store, uid: str, extraction_id: str) -> HistoryRecord:
    record = store.get_extraction(uid, extraction_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Extraction not found")
    return record


def _attachment(filename: str) -> str:
    """``Content-Disposition`` value that survives any upload name.

    Header values must be latin-1, so ``filename`` carries an ASCII fallback
    and ``filename*`` (RFC 5987) the exact UTF-8 name.
    """
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = "".join(ch for ch in fallback if ch.isprintable() and ch not in '"\\;') or "reporte"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _settings_payload(user_settings: UserSettings) -> dict[str, Any]:
    return {
        "hasApiKey": bool(user_settings.gemini_api_key),
        "columnPreferences": merge_preferences(user_settings.column_preferences),
        "hideNSSIdentifier": user_settings.hide_nss_identifier,
    }


# ═══════════════════════════════════════════════════════════════════════════
# Health & column policy
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
def health() -> dict:
    return {
        "status": "ok",
        "ruleset_version": RULESET_VERSION,
        "config": {
            "gemini_api_key_configured": bool(settings.gemini_api_key),
            "gemini_model": settings.gemini_json_model,
            "firebase_configured": bool(settings.firebase_credentials_path),
        },
    }


@app.get("/api/columns")
def columns_api() -> dict:
    return {"columns": [asdict(column) for column in COLUMNS]}


# ═══════════════════════════════════════════════════════════════════════════
# Extraction
# ═══════════════════════════════════════════════════════════════════════════

@app.post("/extract")
async def extract(
    pdf: UploadFile = File(...),
    uid: str = Depends(current_user),
    store=Depends(get_store),
    factory: GeminiClientFactory = Depends(get_client_factory),
) -> dict:
    if pdf.content_type not in {"application/pdf", "application/octet-stream"}:
        raise HTTPException(status_code=400, detail="Upload a PDF file.")

    file_name = pdf.filename or "documento.pdf"
    with _single_extraction(uid):
        raw = await pdf.read()
        if len(raw) > settings.max_upload_mb * 1024 * 1024:
            raise HTTPException(status_code=413, detail=f"PDF exceeds {settings.max_upload_mb:g} MB.")
        user_settings = await run_in_threadpool(store.get_or_create_user_settings, uid)
        try:
            client = factory.get(user_settings.gemini_api_key)
            result = await run_in_threadpool(run_extraction, raw, client)
        except (TextExtractionEmpty, MissingCredential) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except MalformedResponse as exc:
            logger.warning("Extraction of %s rejected: %s", file_name, exc)
            raise HTTPException(status_code=502, detail=EXTRACTION_FAILED) from exc
        except ModelCallTimeout as exc:
            logger.warning("Extraction of %s timed out: %s", file_name, exc)
            raise HTTPException(status_code=504, detail=str(exc)) from exc
        except ModelCallFailure as exc:
            logger.error("Model call failed for %s: %s", file_name, exc)
            raise HTTPException(status_code=502, detail="The AI service could not process the document.") from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected extraction failure for %s", file_name)
            raise HTTPException(status_code=500, detail=f"Unexpected error: {exc}") from exc

    record = await run_in_threadpool(store.save_extraction, uid, file_name, result)
    view = build_table_view(
        result,
        merge_preferences(user_settings.column_preferences),
        user_settings.hide_nss_identifier,
    )
    return {"extraction": record.as_wire(), "table": asdict(view)}


# ═══════════════════════════════════════════════════════════════════════════
# History
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/api/extractions")
def extractions_api(
    q: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    uid: str = Depends(current_user),
    store=Depends(get_store),
) -> dict:
    items = store.list_extractions(uid, search=q, limit=limit)
    return {
        "items": [
            {
                "id": item.id,
                "fileName": item.file_name,
                "extractionDate": item.extraction_date,
                "recordCount": len(item.data.patient_records),
            }
            for item in items
        ]
    }


@app.get("/api/extractions/{extraction_id}")
def extraction_by_id_api(extraction_id: str, uid: str = Depends(current_user), store=Depends(get_store)) -> dict:
    return _get_record_or_404(store, uid, extraction_id).as_wire()


@app.delete("/api/extractions/{extraction_id}")
def delete_extraction_api(extraction_id: str, uid: str = Depends(current_user), store=Depends(get_store)) -> dict:
    if not store.delete_extraction(uid, extraction_id):
        raise HTTPException(status_code=404, detail="Extraction not found")
    return {"status": "deleted", "id": extraction_id}


@app.get("/api/extractions/{extraction_id}/table")
def extraction_table_api(extraction_id: str, uid: str = Depends(current_user), store=Depends(get_store)) -> dict:
    record = _get_record_or_404(store, uid, extraction_id)
    user_settings = store.get_or_create_user_settings(uid)
    view = build_table_view(
        record.data,
        merge_preferences(user_settings.column_preferences),
        user_settings.hide_nss_identifier,
    )
    return asdict(view)


@app.get("/api/extractions/{extraction_id}/export.xlsx")
def export_xlsx_api(extraction_id: str, uid: str = Depends(current_user), store=Depends(get_store)) -> Response:
    record = _get_record_or_404(store, uid, extraction_id)
    return Response(
        content=build_workbook(record.data),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": _attachment(export_filename(record.file_name, "xlsx"))},
    )


@app.get("/api/extractions/{extraction_id}/export.html", response_class=HTMLResponse)
def export_html_api(extraction_id: str, uid: str = Depends(current_user), store=Depends(get_store)) -> HTMLResponse:
    record = _get_record_or_404(store, uid, extraction_id)
    user_settings = store.get_or_create_user_settings(uid)
    html = build_html_report(
        record.data,
        ReportOptions(
            file_name=record.file_name,
            extraction_date=record.extraction_date,
            visible_columns=merge_preferences(user_settings.column_preferences),
            hide_nss_identifier=user_settings.hide_nss_identifier,
        ),
    )
    return HTMLResponse(
        content=html,
        headers={"Content-Disposition": _attachment(export_filename(record.file_name, "html"))},
    )


# ═══════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════

class ApiKeyRequest(BaseModel):
    api_key: str | None = None


class PreferencesRequest(BaseModel):
    column_preferences: dict[str, bool] | None = None
    hide_nss_identifier: bool | None = None


@app.get("/api/settings")
def settings_api(uid: str = Depends(current_user), store=Depends(get_store)) -> dict:
    return _settings_payload(store.get_or_create_user_settings(uid))


@app.put("/api/settings/api-key")
def update_api_key_api(req: ApiKeyRequest, uid: str = Depends(current_user), store=Depends(get_store)) -> dict:
    api_key = (req.api_key or "").strip() or None
    return _settings_payload(store.update_api_key(uid, api_key))


@app.put("/api/settings/preferences")
def update_preferences_api(
    req: PreferencesRequest,
    uid: str = Depends(current_user),
    store=Depends(get_store),
) -> dict:
    column_preferences = None
    if req.column_preferences is not None:
        current = merge_preferences(store.get_or_create_user_settings(uid).column_preferences)
        current.update(req.column_preferences)
        column_preferences = preferences_to_store(current)

    privacy = None
    if req.hide_nss_identifier is not None:
        privacy = PrivacySettings(hide_nss_identifier=req.hide_nss_identifier)

    return _settings_payload(store.update_preferences(uid, column_preferences, privacy))
