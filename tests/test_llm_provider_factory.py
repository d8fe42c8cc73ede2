"""Tests for the provider factory and the httpx-backed providers."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from content_factory.config import ImageProviderConfig, LoggingConfig, ProviderConfig
from content_factory.core.errors import AssetGenerationError, CompletionError, ConfigurationError
from content_factory.llm.providers.factory import (
    available_image_providers,
    available_providers,
    create_completion_provider,
    create_image_provider,
)
from content_factory.llm.providers.images import OpenAIImageProvider
from content_factory.llm.providers.openai_compatible import OpenAICompatibleProvider


def _completion_cfg(**overrides) -> ProviderConfig:
    values = {
        "name": "openai_compatible",
        "model": "test-model",
        "api_key": "test-key",
        "base_url": "https://llm.example.com/v1",
    }
    values.update(overrides)
    return ProviderConfig(**values)


def _image_cfg(**overrides) -> ImageProviderConfig:
    values = {
        "name": "siliconflow",
        "model": "Kwai-Kolors/Kolors",
        "api_key": "img-key",
        "base_url": "https://img.example.com/v1",
        "prompt_suffix": ", no text",
    }
    values.update(overrides)
    return ImageProviderConfig(**values)


def test_available_providers_contains_expected_backends():
    assert {"openai", "openai_compatible", "openrouter"} <= set(available_providers())
    assert {"openai", "siliconflow"} <= set(available_image_providers())


def test_create_completion_provider_openai_compatible():
    provider = create_completion_provider(_completion_cfg(name="openrouter"), LoggingConfig())
    assert isinstance(provider, OpenAICompatibleProvider)


def test_create_completion_provider_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported provider"):
        create_completion_provider(_completion_cfg(name="unknown-provider"), LoggingConfig())


def test_create_completion_provider_requires_api_key(monkeypatch):
    monkeypatch.delenv("CF_MISSING_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        create_completion_provider(
            _completion_cfg(api_key=None, api_key_env="CF_MISSING_KEY"), LoggingConfig()
        )


def test_completion_provider_posts_chat_payload():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "你好"}}]})

    provider = create_completion_provider(
        _completion_cfg(), LoggingConfig(), transport=httpx.MockTransport(handler)
    )
    messages = [{"role": "user", "content": "hi"}]
    text = asyncio.run(provider.complete(messages, temperature=0.3))

    assert text == "你好"
    assert seen["url"] == "https://llm.example.com/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"] == {"model": "test-model", "messages": messages, "temperature": 0.3}


def test_completion_provider_wraps_http_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": {"message": "upstream exploded"}})

    provider = create_completion_provider(
        _completion_cfg(), LoggingConfig(), transport=httpx.MockTransport(handler)
    )
    with pytest.raises(CompletionError, match="upstream exploded") as excinfo:
        asyncio.run(provider.complete([{"role": "user", "content": "hi"}], temperature=0.3))
    assert isinstance(excinfo.value.__cause__, httpx.HTTPStatusError)


def test_image_provider_without_key_returns_placeholder_without_request(monkeypatch):
    monkeypatch.delenv("CF_MISSING_IMAGE_KEY", raising=False)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected without an API key")

    provider = create_image_provider(
        _image_cfg(api_key=None, api_key_env="CF_MISSING_IMAGE_KEY"),
        LoggingConfig(),
        transport=httpx.MockTransport(handler),
    )
    first = asyncio.run(provider.generate("清晨的办公室", "1024x768"))
    second = asyncio.run(provider.generate("清晨的办公室", "1024x768"))

    assert isinstance(provider, OpenAIImageProvider)
    assert first == second
    assert first.startswith("https://picsum.photos/seed/siliconflow-")
    assert first.endswith("/1024/768.jpg")


def test_image_provider_posts_prompt_with_suffix_and_size():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"url": "https://cdn.example.com/1.png"}]})

    provider = create_image_provider(
        _image_cfg(), LoggingConfig(), transport=httpx.MockTransport(handler)
    )
    url = asyncio.run(provider.generate("夜晚的会议室", "1280x720"))

    assert url == "https://cdn.example.com/1.png"
    assert seen["url"] == "https://img.example.com/v1/images/generations"
    assert seen["body"]["prompt"] == "夜晚的会议室, no text"
    assert seen["body"]["size"] == "1280x720"
    assert seen["body"]["n"] == 1


def test_image_provider_raises_asset_error_on_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="rate limited")

    provider = create_image_provider(
        _image_cfg(), LoggingConfig(), transport=httpx.MockTransport(handler)
    )
    with pytest.raises(AssetGenerationError):
        asyncio.run(provider.generate("傍晚的公园"))


def test_create_image_provider_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported image provider"):
        create_image_provider(_image_cfg(name="midjourney"), LoggingConfig())
