from __future__ import annotations

import io
import logging
from pathlib import Path

import pdfplumber

from informe_diario.errors import TextExtractionEmpty

logger = logging.getLogger(__name__)


def extract_text(source: bytes | str | Path) -> str:
    """Text layer of every page, in reading order, pages separated by a blank line.

    Raises ``TextExtractionEmpty`` when the PDF has no usable text layer
    (image-only scans are not OCR'd).
    """
    handle = io.BytesIO(source) if isinstance(source, bytes) else source
    pages: list[str] = []
    try:
        with pdfplumber.open(handle) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
    except Exception as exc:  # noqa: BLE001
        raise TextExtractionEmpty(f"Could not read the PDF text layer: {exc}") from exc

    text = "\n\n".join(pages)
    if not text.strip():
        raise TextExtractionEmpty(
            "Could not extract text from the PDF. The file might be empty or image-based without an OCR text layer."
        )
    logger.debug("Extracted %d characters from %d pages", len(text), len(pages))
    return text
