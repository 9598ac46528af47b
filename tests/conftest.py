"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timezone

import pytest

from informe_diario.errors import MissingCredential
from informe_diario.models import ExtractionResult, HistoryRecord, PrivacySettings, UserSettings


SAMPLE_PAYLOAD = {
    "reportDetails": {
        "nombreMedico": "MERAZ RICO ROGELIO",
        "fecha": "03/11/2025",
        "titular": "98023992",
        "unidadMedica": "HGS 9 PTO. PEÑASCO",
        "consultorio": "Trauma_Orto",
        "turno": "V",
    },
    "patientRecords": [
        {
            "noProgresivo": "1",
            "nombreDerechohabiente": "PEREZ LOPEZ JUAN",
            "numeroSeguridadSocial": "4391 87 6543-1M1985OR",
            "agregadoMedico": "6 F 1 5 0 P E",
            "horaCita": "08:00",
            "inicioAtencion": "08:00",
            "finAtencion": "08:20",
            "primeraVez": "NO",
            "diagnosticoPrincipal": "Gonartrosis, no especificada",
            "numeroRecetas": "0",
            "alta": "",
            "diasIncapacidad": "",
            "riesgoTrabajo": "",
            "paseOtraUnidad": "",
        },
        {
            "noProgresivo": "2",
            "nombreDerechohabiente": "GARCIA RUIZ MARIA",
            "numeroSeguridadSocial": "1234567890-12",
            "agregadoMedico": "3 M 1 9 7 0 OR",
            "horaCita": "09:00",
            "inicioAtencion": "09:00",
            "finAtencion": "10:00",
            "primeraVez": "SI",
            "diagnosticoPrincipal": "Fractura de los huesos de otro(s) dedo(s) del pie",
            "numeroRecetas": "2",
            "alta": "",
            "diasIncapacidad": "",
            "riesgoTrabajo": "",
            "paseOtraUnidad": "",
        },
        {
            "noProgresivo": "6",
            "nombreDerechohabiente": "SOTO DIAZ PEDRO",
            "numeroSeguridadSocial": "5566778899-3",
            "agregadoMedico": "",
            "horaCita": "09:30",
            "inicioAtencion": "",
            "finAtencion": "",
            "primeraVez": "NO",
            "diagnosticoPrincipal": "Esguince de tobillo",
            "numeroRecetas": "1",
            "alta": "X",
            "diasIncapacidad": "1",
            "riesgoTrabajo": "1",
            "paseOtraUnidad": "",
        },
    ],
}


@pytest.fixture
def sample_payload():
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def sample_response_text(sample_payload):
    return json.dumps(sample_payload, ensure_ascii=False)


@pytest.fixture
def sample_result(sample_payload):
    sample_payload["patientRecords"][0]["numeroSeguridadSocial"] = "4391876543-1M1985OR"
    return ExtractionResult.model_validate(sample_payload)


class FakeGeminiClient:
    def __init__(self, response_text: str = "", error: Exception | None = None, api_key: str = "test-key"):
        self.api_key = api_key
        self.response_text = response_text
        self.error = error
        self.calls: list[dict] = []

    def generate_text(self, **kwargs) -> str:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response_text


class FakeClientFactory:
    def __init__(self, client: FakeGeminiClient):
        self.client = client

    def get(self, api_key):
        if not api_key:
            raise MissingCredential("Gemini API key is missing.")
        return self.client


class FakeStore:
    """In-memory stand-in for the Firestore client module."""

    def __init__(self):
        self.settings: dict[str, UserSettings] = {}
        self.history: dict[str, dict[str, HistoryRecord]] = {}
        self._next_id = 0

    def verify_user_token(self, token: str) -> str:
        if token != "good-token":
            raise ValueError("bad token")
        return "user-1"

    def get_or_create_user_settings(self, uid):
        return self.settings.setdefault(uid, UserSettings())

    def update_api_key(self, uid, api_key):
        current = self.get_or_create_user_settings(uid)
        self.settings[uid] = current.model_copy(update={"gemini_api_key": api_key})
        return self.settings[uid]

    def update_preferences(self, uid, column_preferences=None, privacy_settings: PrivacySettings | None = None):
        current = self.get_or_create_user_settings(uid)
        update = {}
        if column_preferences is not None:
            update["column_preferences"] = column_preferences
        if privacy_settings is not None:
            update["privacy_settings"] = privacy_settings
        self.settings[uid] = current.model_copy(update=update)
        return self.settings[uid]

    def save_extraction(self, uid, file_name, result):
        self._next_id += 1
        record = HistoryRecord(
            id=f"ext-{self._next_id}",
            file_name=file_name,
            extraction_date=datetime(2025, 11, 3, 18, self._next_id, tzinfo=timezone.utc).isoformat(),
            data=result,
        )
        self.history.setdefault(uid, {})[record.id] = record
        return record

    def list_extractions(self, uid, search=None, limit=100):
        items = sorted(self.history.get(uid, {}).values(), key=lambda r: r.extraction_date, reverse=True)
        if search:
            items = [item for item in items if search.lower() in item.file_name.lower()]
        return items[:limit]

    def get_extraction(self, uid, extraction_id):
        return self.history.get(uid, {}).get(extraction_id)

    def delete_extraction(self, uid, extraction_id):
        return self.history.get(uid, {}).pop(extraction_id, None) is not None


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_client(sample_response_text):
    return FakeGeminiClient(response_text=sample_response_text)


@pytest.fixture
def make_client():
    return FakeGeminiClient


@pytest.fixture
def make_factory():
    return FakeClientFactory
