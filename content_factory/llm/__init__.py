"""LLM providers, prompt rendering and observability."""

from .providers.base import CompletionProvider, ImageProvider
from .providers.factory import (
    available_providers,
    create_completion_provider,
    create_image_provider,
)
from .tracing import setup_langfuse, flush, start_span, set_span_output, record_span_error

__all__ = [
    "CompletionProvider",
    "ImageProvider",
    "create_completion_provider",
    "create_image_provider",
    "available_providers",
    "setup_langfuse",
    "flush",
    "start_span",
    "set_span_output",
    "record_span_error",
]
