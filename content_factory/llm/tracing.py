"""
Langfuse tracing for pipeline runs, stages and model calls.

Runs, stages and every completion or image request open nested spans, so a
single article can be followed from draft to cover in the Langfuse UI.
Payloads go through the same redaction and truncation as the LLM log.
While tracing is disabled every helper is a no-op and spans are ``None``.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import json
import logging
import os
from typing import Any, Iterator

from ..config import LangfuseConfig
from ..utils.logging import redact_text, truncate_text

logger = logging.getLogger(__name__)


@dataclass
class _TracingState:
    client: Any = None
    cfg: LangfuseConfig | None = None


_state = _TracingState()


def setup_langfuse(cfg: LangfuseConfig) -> None:
    """(Re)configure tracing; keys and endpoint fall back to LANGFUSE_* env vars."""
    _state.cfg = cfg
    _state.client = None
    if not cfg.enabled:
        return

    public_key = _env_or(cfg.public_key, "LANGFUSE_PUBLIC_KEY")
    secret_key = _env_or(cfg.secret_key, "LANGFUSE_SECRET_KEY")
    if not (public_key and secret_key):
        logger.warning("Langfuse tracing requested without public/secret keys; skipping")
        return

    from langfuse import Langfuse

    _state.client = Langfuse(
        public_key=public_key,
        secret_key=secret_key,
        base_url=_env_or(cfg.host, "LANGFUSE_BASE_URL"),
        environment=_env_or(cfg.environment, "LANGFUSE_ENVIRONMENT"),
        release=_env_or(cfg.release, "LANGFUSE_RELEASE"),
        timeout=cfg.timeout_seconds,
    )
    logger.info("Langfuse tracing enabled")


def get_tracer():
    """The configured Langfuse client, or None while tracing is off."""
    return _state.client


@contextmanager
def start_span(
    name: str,
    kind: str,
    input_value: Any | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Any | None]:
    """Open a span around the block; an escaping exception is recorded on it."""
    client = get_tracer()
    if client is None:
        yield None
        return

    metadata = _metadata(attributes or {})
    if kind:
        metadata.setdefault("span.kind", kind)
    try:
        span_cm = client.start_as_current_span(
            name=name, input=_payload(input_value), metadata=metadata
        )
        span = span_cm.__enter__()
    except Exception:  # noqa: BLE001
        logger.debug("Could not open span %s", name, exc_info=True)
        yield None
        return

    try:
        yield span
    except Exception as exc:
        record_span_error(span, exc)
        raise
    finally:
        try:
            span_cm.__exit__(None, None, None)
        except Exception:  # noqa: BLE001
            logger.debug("Could not close span %s", name, exc_info=True)


def set_span_output(span: Any | None, output_value: Any) -> None:
    payload = _payload(output_value)
    if span is not None and payload is not None:
        _update(span, output=payload)


def record_span_error(span: Any | None, exc: BaseException) -> None:
    if span is not None:
        _update(span, level="ERROR", status_message=str(exc))


def flush() -> None:
    """Send buffered spans before the process exits."""
    client = get_tracer()
    if client is None:
        return
    try:
        client.flush()
    except Exception:  # noqa: BLE001
        logger.warning("Langfuse flush failed", exc_info=True)


def _env_or(value: str | None, env_key: str) -> str | None:
    return value or os.getenv(env_key)


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    if _state.cfg is None:
        return text
    return truncate_text(redact_text(text, _state.cfg.redaction), _state.cfg.max_text_chars)


def _metadata(attributes: dict[str, Any]) -> dict[str, Any]:
    """Drop unset attributes and stringify anything that is not a scalar."""
    return {
        key: value if isinstance(value, (str, int, float, bool)) else str(value)
        for key, value in attributes.items()
        if value is not None
    }


def _update(span: Any, **fields: Any) -> None:
    try:
        span.update(**fields)
    except Exception:  # noqa: BLE001
        logger.debug("Could not update span", exc_info=True)
