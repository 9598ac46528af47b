from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from informe_diario.config import settings
from informe_diario.errors import MissingCredential, ModelCallFailure, ModelCallTimeout

logger = logging.getLogger(__name__)


class GeminiClient:
    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.api_key = api_key or settings.gemini_api_key
        if not self.api_key:
            raise MissingCredential("Gemini API key is missing. Configure it in settings or GEMINI_API_KEY.")
        self.timeout = timeout or settings.gemini_timeout_seconds
        self.session = requests.Session()

    def generate_text(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        response_schema: dict[str, Any] | None = None,
        temperature: float = 0.0,
    ) -> str:
        generation_config: dict[str, Any] = {
            "temperature": temperature,
            "responseMimeType": "application/json",
        }
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema

        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": generation_config,
        }

        url = f"{settings.gemini_api_base}/{model}:generateContent"
        try:
            response = self.session.post(
                url,
                json=payload,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise ModelCallTimeout(f"Gemini did not answer within {self.timeout:g}s") from exc
        except requests.RequestException as exc:
            raise ModelCallFailure(f"Gemini request failed: {exc}") from exc

        if response.status_code >= 300:
            raise ModelCallFailure(f"Gemini API error {response.status_code}: {response.text[:500]}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ModelCallFailure("Gemini returned a non-JSON envelope") from exc
        return self._extract_text(data)

    @staticmethod
    def _extract_text(api_response: dict[str, Any]) -> str:
        # An empty text is left for the normalizer to reject.
        try:
            parts = api_response["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ModelCallFailure(f"Failed to parse Gemini response: {str(api_response)[:500]}") from exc
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class GeminiClientFactory:
    """Hands out one ``GeminiClient`` per credential.

    Owned by the caller (one per app or session) and rebuilt only when the
    key changes; the lock keeps a key rotation from racing a concurrent build.
    """

    def __init__(self, timeout: float | None = None):
        self._timeout = timeout
        self._lock = threading.Lock()
        self._client: GeminiClient | None = None

    def get(self, api_key: str | None) -> GeminiClient:
        api_key = api_key or settings.gemini_api_key
        if not api_key:
            raise MissingCredential("Gemini API key is missing. Configure it in settings or GEMINI_API_KEY.")
        with self._lock:
            if self._client is None or self._client.api_key != api_key:
                logger.info("Building Gemini client for a new credential")
                self._client = GeminiClient(api_key=api_key, timeout=self._timeout)
            return self._client
