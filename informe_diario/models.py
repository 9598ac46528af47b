"""Typed views of the extraction payload and of the persisted user data.

Attributes are snake_case; the wire keys (what Gemini emits and what the
history store keeps) are the camelCase aliases, e.g. ``noProgresivo``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def as_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class _TextRow(_WireModel):
    model_config = ConfigDict(frozen=True)

    # Empty string means "not observed"; the schema forbids nulls.
    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value


class ReportHeader(_TextRow):
    nombre_medico: str = ""
    fecha: str = ""
    titular: str = ""
    unidad_medica: str = ""
    consultorio: str = ""
    turno: str = ""


class PatientRecord(_TextRow):
    no_progresivo: str = ""
    nombre_derechohabiente: str = ""
    numero_seguridad_social: str = ""
    agregado_medico: str = ""
    hora_cita: str = ""
    inicio_atencion: str = ""
    fin_atencion: str = ""
    primera_vez: str = ""
    diagnostico_principal: str = ""
    numero_recetas: str = ""
    alta: str = ""
    dias_incapacidad: str = ""
    riesgo_trabajo: str = ""
    pase_otra_unidad: str = ""


class ExtractionResult(_WireModel):
    model_config = ConfigDict(frozen=True)

    report_details: ReportHeader
    patient_records: tuple[PatientRecord, ...] = ()


def wire_keys(model: type[BaseModel]) -> list[str]:
    return [field.alias or name for name, field in model.model_fields.items()]


class PrivacySettings(_WireModel):
    hide_nss_identifier: bool = Field(default=False, alias="hideNSSIdentifier")


class UserSettings(_WireModel):
    gemini_api_key: str | None = None
    column_preferences: dict[str, bool | None] | None = None
    privacy_settings: PrivacySettings | None = None

    @property
    def hide_nss_identifier(self) -> bool:
        return bool(self.privacy_settings and self.privacy_settings.hide_nss_identifier)


class HistoryRecord(_WireModel):
    id: str
    file_name: str
    extraction_date: str
    data: ExtractionResult
