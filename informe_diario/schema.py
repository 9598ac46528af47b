from __future__ import annotations

import copy
from typing import Any

from informe_diario.prompts import HEADER_RULES, RECORD_RULES, FieldRule

HEADER_KEY = "reportDetails"
RECORDS_KEY = "patientRecords"

# Keywords the Gemini responseSchema dialect does not accept.
_JSON_SCHEMA_ONLY = {"additionalProperties", "$schema", "title"}


def _object_schema(rules: tuple[FieldRule, ...], description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "description": description,
        "properties": {
            rule.key: {"type": "string", "description": rule.description} for rule in rules
        },
        "required": [rule.key for rule in rules],
    }


EXTRACTION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "ExtractionResult",
    "type": "object",
    "properties": {
        HEADER_KEY: _object_schema(HEADER_RULES, "Datos generales del encabezado del informe."),
        RECORDS_KEY: {
            "type": "array",
            "description": "Una lista de todos los registros de pacientes encontrados en el documento.",
            "items": _object_schema(RECORD_RULES, "Una fila de paciente."),
        },
    },
    "required": [HEADER_KEY, RECORDS_KEY],
}


def header_fields() -> list[str]:
    return list(EXTRACTION_SCHEMA["properties"][HEADER_KEY]["required"])


def record_fields() -> list[str]:
    return list(EXTRACTION_SCHEMA["properties"][RECORDS_KEY]["items"]["required"])


def _to_gemini(node: Any) -> Any:
    if isinstance(node, dict):
        converted = {}
        for key, value in node.items():
            if key in _JSON_SCHEMA_ONLY:
                continue
            if key == "type" and isinstance(value, str):
                converted[key] = value.upper()
            elif key == "properties":
                converted[key] = {name: _to_gemini(prop) for name, prop in value.items()}
            else:
                converted[key] = _to_gemini(value)
        return converted
    if isinstance(node, list):
        return [_to_gemini(item) for item in node]
    return node


def gemini_response_schema() -> dict[str, Any]:
    """The extraction schema in the ``generationConfig.responseSchema`` dialect."""
    return _to_gemini(copy.deepcopy(EXTRACTION_SCHEMA))
