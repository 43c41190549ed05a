"""Platform tag -> generation provider."""

from __future__ import annotations

from milobanana.providers.base import GenerationProvider
from milobanana.providers.gemini_provider import GeminiProvider
from milobanana.providers.openai_provider import OpenAIProvider

SUPPORTED_PLATFORMS: tuple[str, ...] = ("gemini", "openai")


class ProviderRegistry:
    """Closed set of providers selected by platform tag."""

    def __init__(self, providers: dict[str, GenerationProvider]):
        unknown = set(providers) - set(SUPPORTED_PLATFORMS)
        if unknown:
            raise ValueError(f"unsupported platforms: {sorted(unknown)}")
        self._providers = dict(providers)

    @classmethod
    def default(cls, *, timeout_seconds: float = 120.0) -> "ProviderRegistry":
        return cls({
            "gemini": GeminiProvider(timeout_seconds=timeout_seconds),
            "openai": OpenAIProvider(),
        })

    def get(self, platform: str) -> GenerationProvider:
        try:
            return self._providers[platform]
        except KeyError:
            raise ValueError(f"Unsupported platform: {platform}") from None

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()
