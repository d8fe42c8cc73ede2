"""Provider factory and registry for hot-swappable service backends."""

from __future__ import annotations

import logging

import httpx

from ...config import ImageProviderConfig, LoggingConfig, ProviderConfig, get_api_key
from .base import CompletionProvider, ImageProvider
from .images import OpenAIImageProvider
from .openai_compatible import OpenAICompatibleProvider


_PROVIDER_REGISTRY: dict[str, type[CompletionProvider]] = {
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "openai-compatible": OpenAICompatibleProvider,
    "openrouter": OpenAICompatibleProvider,
}

_IMAGE_PROVIDER_REGISTRY: dict[str, type[ImageProvider]] = {
    "openai": OpenAIImageProvider,
    "siliconflow": OpenAIImageProvider,
    "openai_compatible": OpenAIImageProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered completion provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def available_image_providers() -> list[str]:
    """Return the set of registered image provider names."""
    return sorted(_IMAGE_PROVIDER_REGISTRY.keys())


def create_completion_provider(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CompletionProvider:
    """Build a completion provider from runtime config.

    Raises:
        ValueError: For an unregistered provider name
        ConfigurationError: When no API key can be resolved
    """
    name = provider_cfg.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {provider_cfg.name}. Supported: {supported}")
    api_key = get_api_key(provider_cfg)
    return builder(provider_cfg, api_key, log_cfg, llm_logger, transport=transport)


def create_image_provider(
    image_cfg: ImageProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ImageProvider:
    """Build an image provider; a missing key yields a placeholder-only provider."""
    name = image_cfg.name.lower().strip()
    builder = _IMAGE_PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_image_providers())
        raise ValueError(f"Unsupported image provider: {image_cfg.name}. Supported: {supported}")
    api_key = get_api_key(image_cfg)
    return builder(image_cfg, api_key, log_cfg, llm_logger, transport=transport)
