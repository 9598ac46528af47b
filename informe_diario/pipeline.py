from __future__ import annotations

import logging
from pathlib import Path

from informe_diario.config import settings
from informe_diario.errors import TextExtractionEmpty
from informe_diario.gemini_client import GeminiClient
from informe_diario.models import ExtractionResult
from informe_diario.normalizer import normalize_response
from informe_diario.pdf_text import extract_text
from informe_diario.prompts import EXTRACTION_SYSTEM_PROMPT, RULESET_VERSION, build_extraction_prompt
from informe_diario.schema import gemini_response_schema

logger = logging.getLogger(__name__)


def extract_from_text(
    pdf_text: str,
    gemini_client: GeminiClient,
    model_json: str | None = None,
) -> ExtractionResult:
    if not pdf_text or not pdf_text.strip():
        raise TextExtractionEmpty("The PDF text layer is empty; nothing to send to the model.")

    json_model = model_json or settings.gemini_json_model
    logger.info(
        "Extracting report with %s (ruleset v%s, %d chars)", json_model, RULESET_VERSION, len(pdf_text)
    )
    raw = gemini_client.generate_text(
        model=json_model,
        system_prompt=EXTRACTION_SYSTEM_PROMPT,
        user_prompt=build_extraction_prompt(pdf_text),
        response_schema=gemini_response_schema(),
        temperature=0.0,
    )
    result = normalize_response(raw)
    logger.info("Extraction produced %d patient records", len(result.patient_records))
    return result


def run_extraction(
    pdf: bytes | str | Path,
    gemini_client: GeminiClient,
    model_json: str | None = None,
) -> ExtractionResult:
    if isinstance(pdf, (str, Path)) and not Path(pdf).exists():
        raise FileNotFoundError(f"PDF not found: {pdf}")

    pdf_text = extract_text(pdf)
    return extract_from_text(pdf_text, gemini_client, model_json=model_json)
