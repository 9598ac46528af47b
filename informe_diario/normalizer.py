from __future__ import annotations

import json
import logging
import re
from typing import Any

from jsonschema import ValidationError, validate

from informe_diario.errors import EmptyResponse, IncompleteResult, InvalidJSON
from informe_diario.models import ExtractionResult
from informe_diario.schema import EXTRACTION_SCHEMA, HEADER_KEY, RECORDS_KEY, header_fields, record_fields

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_-]*")
_FENCE_CLOSE_RE = re.compile(r"```$")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_code_fence(text: str) -> str:
    text = (text or "").strip()
    if text.startswith("```"):
        text = _FENCE_OPEN_RE.sub("", text).strip()
        text = _FENCE_CLOSE_RE.sub("", text).strip()
    return text


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return str(value)
    return value


def _fill_fields(row: Any, fields: list[str]) -> Any:
    if not isinstance(row, dict):
        return row
    return {field: _as_text(row.get(field)) for field in fields}


def _coerce(payload: dict[str, Any]) -> dict[str, Any]:
    records = payload[RECORDS_KEY]
    if isinstance(records, list):
        records = [_fill_fields(row, record_fields()) for row in records]
    return {
        HEADER_KEY: _fill_fields(payload[HEADER_KEY], header_fields()),
        RECORDS_KEY: records,
    }


def normalize_response(raw_text: str) -> ExtractionResult:
    """Turn the model's raw answer into a validated ``ExtractionResult``.

    Accepts bare JSON or JSON wrapped in a triple-backtick fence. Missing or
    null fields become empty strings; whitespace inside every NSS is removed.
    """
    text = strip_code_fence(raw_text)
    if not text:
        raise EmptyResponse("AI returned an empty response.")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Model returned invalid JSON: %s", text[:300])
        raise InvalidJSON(f"AI returned invalid JSON: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise IncompleteResult("Expected a top-level JSON object from the model.")
    missing = [key for key in (HEADER_KEY, RECORDS_KEY) if key not in payload or payload[key] is None]
    if missing:
        logger.warning("Model response missing sections %s: %s", missing, text[:300])
        raise IncompleteResult(
            f"AI response did not contain the required {' and '.join(repr(key) for key in missing)} fields."
        )

    payload = _coerce(payload)
    try:
        validate(instance=payload, schema=EXTRACTION_SCHEMA)
    except ValidationError as exc:
        logger.warning("Model response failed schema validation: %s", exc.message)
        raise IncompleteResult(f"AI response failed schema validation: {exc.message}") from exc

    for record in payload[RECORDS_KEY]:
        record["numeroSeguridadSocial"] = _WHITESPACE_RE.sub("", record["numeroSeguridadSocial"])

    return ExtractionResult.model_validate(payload)
