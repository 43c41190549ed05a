"""Gemini generateContent over the REST API."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from milobanana.providers.base import GeneratedContent, GenerationProvider
from milobanana.storage.sqlite_store import GenerationSettings
from milobanana.utils.exceptions import GenerationError

# Error bodies are truncated to keep logs and RPC error data short.
_MAX_DETAIL_LEN = 300


def parse_gemini_response(data: dict[str, Any]) -> list[GeneratedContent]:
    """Collect text and inline image parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    content = (candidates[0] or {}).get("content") or {}
    results: list[GeneratedContent] = []
    for part in content.get("parts") or []:
        item = GeneratedContent()
        if part.get("text"):
            item.text = part["text"]
        inline = part.get("inlineData") or part.get("inline_data") or {}
        if inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            item.image_data = f"data:{mime_type};base64,{inline['data']}"
        if item.text or item.image_data:
            results.append(item)
    return results


class GeminiProvider(GenerationProvider):
    platform = "gemini"

    def __init__(
        self,
        *,
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def generate(
        self,
        parts: list[dict[str, Any]],
        settings: GenerationSettings,
    ) -> list[GeneratedContent]:
        url = f"{settings.base_url.rstrip('/')}/v1beta/models/{settings.model}:generateContent"
        body = {"contents": [{"role": "user", "parts": parts}]}
        headers = {"x-goog-api-key": settings.api_key, "Content-Type": "application/json"}
        try:
            resp = await self._get_client().post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise GenerationError(f"request failed: {e}", platform=self.platform, is_retryable=True) from e
        if resp.status_code >= 400:
            logger.warning("Gemini returned HTTP {} for model {}", resp.status_code, settings.model)
            raise GenerationError(
                f"HTTP {resp.status_code}: {resp.text[:_MAX_DETAIL_LEN]}",
                platform=self.platform,
                is_retryable=resp.status_code in (429, 500, 502, 503, 504),
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError("invalid JSON in provider response", platform=self.platform) from e
        if not isinstance(data, dict):
            raise GenerationError("unexpected provider response shape", platform=self.platform)
        return parse_gemini_response(data)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
