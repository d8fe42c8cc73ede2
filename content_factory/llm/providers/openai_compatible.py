"""OpenAI-compatible chat completion provider (OpenRouter by default)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.errors import CompletionError, ConfigurationError
from ...utils.logging import log_event, redact_text, truncate_text
from ..tracing import record_span_error, set_span_output, start_span
from .base import CompletionProvider

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(CompletionProvider):
    """Calls ``{base_url}/chat/completions`` with ``{model, messages, temperature}``."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ConfigurationError(
                f"Missing API key for completion provider '{cfg.name}'", stage="config"
            )
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self._transport = transport

    async def complete(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        event: str = "llm_completion",
        attributes: dict[str, Any] | None = None,
    ) -> str:
        payload = {
            "model": self.cfg.model,
            "messages": messages,
            "temperature": temperature,
        }
        prompt = messages[-1]["content"] if messages else ""
        with start_span(
            f"openai_compatible.{event}",
            kind="llm",
            input_value=prompt,
            attributes={
                "llm.model": self.cfg.model,
                "llm.provider": self.cfg.name,
                "llm.temperature": temperature,
                **(attributes or {}),
            },
        ) as span:
            try:
                data = await self._post(payload)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response(event, "provider_error", str(exc), prompt)
                raise CompletionError(_describe_http_error(exc), stage=event) from exc
            except ValueError as exc:
                record_span_error(span, exc)
                self._log_llm_response(event, "parse_error", str(exc), prompt)
                raise CompletionError("completion response is not JSON", stage=event) from exc

            content = _extract_text(data)
            set_span_output(span, content)
            self._log_llm_response(event, "ok" if content else "empty", content, prompt)
            return content

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        if "openrouter.ai" in self.cfg.base_url:
            headers["HTTP-Referer"] = "http://localhost:3000"
            headers["X-Title"] = "Content Factory"
        return headers

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        timeout = httpx.Timeout(self.cfg.timeout_seconds, connect=10.0)
        async with httpx.AsyncClient(
            timeout=timeout,
            trust_env=self.cfg.trust_env,
            transport=self._transport,
        ) as client:
            resp = await client.post(url, headers=self._headers(), json=payload)
            resp.raise_for_status()
            return resp.json()

    def _log_llm_response(self, event: str, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": event,
            "status": status,
            "model": self.cfg.model,
            "provider": self.cfg.name,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)


def _extract_text(data: Any) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def _describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        message = error.get("message") if isinstance(error, dict) else None
        return (
            f"completion service returned {exc.response.status_code}: "
            f"{message or exc.response.reason_phrase}"
        )
    return f"completion request failed: {type(exc).__name__}: {exc}"
