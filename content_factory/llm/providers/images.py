"""OpenAI-compatible image generation provider (SiliconFlow, DALL-E)."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import httpx

from ...config import ImageProviderConfig, LoggingConfig
from ...core.errors import AssetGenerationError
from ...utils.logging import log_event, redact_text, truncate_text
from ..tracing import record_span_error, set_span_output, start_span
from .base import ImageProvider

logger = logging.getLogger(__name__)


class OpenAIImageProvider(ImageProvider):
    """Calls ``{base_url}/images/generations`` and returns the first image URL.

    Without an API key no request is made; a placeholder URL derived from
    the prompt hash is returned instead.
    """

    def __init__(
        self,
        cfg: ImageProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._transport = transport
        if not api_key:
            logger.warning(
                "No API key for image provider '%s'; placeholder images will be used", cfg.name
            )

    async def generate(self, prompt: str, size: str | None = None) -> str:
        request_size = size or self.cfg.size
        if not self.api_key:
            return self.placeholder_url(prompt, request_size)

        payload = {
            "model": self.cfg.model,
            "prompt": prompt + self.cfg.prompt_suffix,
            "n": 1,
            "size": request_size,
            "response_format": "url",
        }
        with start_span(
            f"{self.cfg.name}.generate_image",
            kind="llm",
            input_value=payload["prompt"],
            attributes={
                "image.model": self.cfg.model,
                "image.provider": self.cfg.name,
                "image.size": request_size,
            },
        ) as span:
            try:
                data = await self._post(payload)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_image_response("provider_error", str(exc), prompt)
                raise AssetGenerationError(
                    f"{self.cfg.name} image request failed: {exc}", stage="assets"
                ) from exc
            except ValueError as exc:
                record_span_error(span, exc)
                self._log_image_response("parse_error", str(exc), prompt)
                raise AssetGenerationError(
                    f"{self.cfg.name} image response is not JSON", stage="assets"
                ) from exc

            url = _extract_url(data)
            if not url:
                error = AssetGenerationError(
                    f"{self.cfg.name} image response has no URL", stage="assets"
                )
                record_span_error(span, error)
                self._log_image_response("empty", "", prompt)
                raise error
            set_span_output(span, url)
            self._log_image_response("ok", url, prompt)
            return url

    def placeholder_url(self, prompt: str, size: str | None = None) -> str:
        digest = hashlib.sha1(prompt.encode("utf-8")).hexdigest()[:16]
        width, height = _split_size(size or self.cfg.size)
        base = self.cfg.placeholder_base_url.rstrip("/")
        return f"{base}/{self.cfg.name}-{digest}/{width}/{height}.jpg"

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/images/generations"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        timeout = httpx.Timeout(self.cfg.timeout_seconds, connect=10.0)
        async with httpx.AsyncClient(
            timeout=timeout,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            resp = await client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()

    def _log_image_response(self, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": "image_generation",
            "status": status,
            "model": self.cfg.model,
            "provider": self.cfg.name,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "Image response", **payload)


def _extract_url(data: Any) -> str:
    try:
        return data["data"][0]["url"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def _split_size(size: str) -> tuple[str, str]:
    width, _, height = size.partition("x")
    if not width.isdigit() or not height.isdigit():
        return "1024", "1024"
    return width, height
