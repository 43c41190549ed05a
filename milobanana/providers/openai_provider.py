"""OpenAI image generation (not available yet)."""

from __future__ import annotations

from typing import Any

from milobanana.providers.base import GeneratedContent, GenerationProvider
from milobanana.storage.sqlite_store import GenerationSettings
from milobanana.utils.exceptions import ProviderNotImplementedError


class OpenAIProvider(GenerationProvider):
    platform = "openai"

    async def generate(
        self,
        parts: list[dict[str, Any]],
        settings: GenerationSettings,
    ) -> list[GeneratedContent]:
        raise ProviderNotImplementedError(self.platform, "OpenAI service not yet implemented")
