"""Client for the Gemini ``generateContent`` endpoint with structured JSON output."""

from __future__ import annotations

import logging
from typing import Any

from ...config import settings
from ...errors import PlanningFailed, ProviderUnavailable
from ..transport import ProviderTransport, RequestGate

logger = logging.getLogger(__name__)


class GeminiClient:
    def __init__(
        self,
        gate: RequestGate,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transport: ProviderTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.planner_api_key
        if not self.api_key:
            raise ValueError("Planner API key is not configured.")
        self.model = model or settings.planner_model
        self.base_url = base_url or settings.planner_base_url
        self.transport = transport or ProviderTransport(
            "planner",
            "planner",
            gate,
            timeout=settings.planner_timeout_seconds,
            max_retries=0,
            headers={"x-goog-api-key": self.api_key},
        )

    def complete(self, prompt: str, schema: dict[str, Any]) -> str:
        """Return the JSON text produced by the model for ``prompt``."""
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            data = self.transport.post_json(url, payload)
        except ProviderUnavailable as exc:
            raise PlanningFailed(str(exc)) from exc
        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError) as exc:
            raise PlanningFailed(f"Unexpected planner response shape: {exc}") from exc
        if not text.strip():
            raise PlanningFailed("Planner returned an empty response.")
        return text
