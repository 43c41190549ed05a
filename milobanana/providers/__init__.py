"""Generation provider abstraction module."""

from milobanana.providers.base import GeneratedContent, GenerationProvider
from milobanana.providers.gemini_provider import GeminiProvider
from milobanana.providers.openai_provider import OpenAIProvider
from milobanana.providers.registry import SUPPORTED_PLATFORMS, ProviderRegistry

__all__ = [
    "GeneratedContent",
    "GenerationProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "ProviderRegistry",
    "SUPPORTED_PLATFORMS",
]
