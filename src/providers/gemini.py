"""Gemini REST adapter.

Calls ``POST {base_url}/models/{model}:generateContent`` with httpx and
returns the decoded JSON body untouched; image extraction happens in the
orchestration layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from src.core.constants import DEFAULT_GEMINI_BASE_URL
from src.core.exceptions import ModelProviderError
from src.providers.base import ImageModelClient


API_KEY_HEADER = "x-goog-api-key"
MAX_DETAIL_LENGTH = 240


def _error_detail(response: httpx.Response) -> str:
    """Prefer the provider's error.message; fall back to truncated body text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
    detail = response.text.strip()
    if len(detail) > MAX_DETAIL_LENGTH:
        detail = detail[:MAX_DETAIL_LENGTH] + "..."
    return detail or response.reason_phrase


class GeminiClient(ImageModelClient):
    """ImageModelClient backed by the Gemini generateContent REST endpoint.

    Attributes:
        base_url: API root, e.g. https://generativelanguage.googleapis.com/v1beta.

    The client owns its httpx.AsyncClient unless one is injected.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        # Deadlines are enforced per attempt by the orchestrator, not here.
        self._client = client or httpx.AsyncClient(timeout=None)

    @property
    def base_url(self) -> str:
        return self._base_url

    def endpoint(self, model: str) -> str:
        return f"{self._base_url}/models/{model}:generateContent"

    async def generate_content(
        self, model: str, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                self.endpoint(model),
                json=dict(payload),
                headers={API_KEY_HEADER: self._api_key},
            )
        except httpx.HTTPError as exc:
            raise ModelProviderError(
                f"Request to {model} failed: {exc}", model_id=model
            ) from exc

        if not response.is_success:
            raise ModelProviderError(
                _error_detail(response),
                model_id=model,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ModelProviderError(
                f"{model} returned invalid JSON", model_id=model
            ) from exc
        if not isinstance(body, dict):
            raise ModelProviderError(f"{model} returned unexpected JSON", model_id=model)
        return body

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
