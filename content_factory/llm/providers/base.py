"""Abstract interfaces for the completion and image generation services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CompletionProvider(ABC):
    """Provider interface for chat-style text completion."""

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        event: str = "llm_completion",
        attributes: dict[str, Any] | None = None,
    ) -> str:
        """Return the completion text.

        Raises:
            CompletionError: On transport failure or an unusable payload.
        """
        raise NotImplementedError


class ImageProvider(ABC):
    """Provider interface for single-image generation."""

    @abstractmethod
    async def generate(self, prompt: str, size: str | None = None) -> str:
        """Return the URL of one generated image.

        Raises:
            AssetGenerationError: When the service fails or returns no URL.
        """
        raise NotImplementedError
