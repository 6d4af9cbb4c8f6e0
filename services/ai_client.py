from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from core.errors import ConfigurationError, ProviderError
from core.settings import AISettings


class GenerativeTextClient:
    """Minimal client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(self, settings: AISettings, *, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.logger = logging.getLogger("mission_control.ai")

    @property
    def configured(self) -> bool:
        return self.settings.configured

    def _require_config(self) -> None:
        if not self.configured:
            raise ConfigurationError(
                "Google AI is not configured. Set GOOGLE_API_KEY to enable AI features."
            )

    def generate(self, prompt: str) -> str:
        self._require_config()
        url = f"{self.settings.endpoint.rstrip('/')}/{self.settings.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = self.session.post(
                url,
                params={"key": self.settings.api_key},
                json=body,
                timeout=self.settings.timeout_sec,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"AI API request failed: {exc}") from exc

        if not response.ok:
            raise ProviderError(
                f"AI API error: {response.status_code} {response.reason}",
                status=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("AI API returned a non-JSON body") from exc
        return _candidate_text(payload)


def _candidate_text(payload: Any) -> str:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise ProviderError("AI API response had no candidate text") from exc
    return text


__all__ = ["GenerativeTextClient"]
