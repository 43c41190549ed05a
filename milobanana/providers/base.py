"""Generation provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from milobanana.storage.sqlite_store import GenerationSettings


@dataclass
class GeneratedContent:
    """One output part: text, an image as a data URL, or both."""
    text: str | None = None
    image_data: str | None = None

    def to_dict(self) -> dict[str, str]:
        out: dict[str, str] = {}
        if self.text:
            out["text"] = self.text
        if self.image_data:
            out["imageData"] = self.image_data
        return out


class GenerationProvider(ABC):
    """One capability: turn prompt parts into generated content, or fail."""

    platform: str = ""

    @abstractmethod
    async def generate(
        self,
        parts: list[dict[str, Any]],
        settings: GenerationSettings,
    ) -> list[GeneratedContent]:
        """Generate content from prompt parts ({text} / {inlineData: {mimeType, data}})."""

    async def aclose(self) -> None:
        return None
