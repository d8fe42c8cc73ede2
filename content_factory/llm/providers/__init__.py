"""Completion and image provider implementations."""

from .base import CompletionProvider, ImageProvider
from .factory import (
    available_image_providers,
    available_providers,
    create_completion_provider,
    create_image_provider,
)
from .images import OpenAIImageProvider
from .openai_compatible import OpenAICompatibleProvider

__all__ = [
    "CompletionProvider",
    "ImageProvider",
    "OpenAICompatibleProvider",
    "OpenAIImageProvider",
    "create_completion_provider",
    "create_image_provider",
    "available_providers",
    "available_image_providers",
]
