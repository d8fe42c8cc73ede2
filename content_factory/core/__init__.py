"""
Core domain models and business logic.

This package contains data types, catalogs, errors and text helpers that
are independent of any specific pipeline stage.
"""

from .dedup import dedup_articles
from .errors import (
    AnalysisFailure,
    AssetGenerationError,
    BatchItemFailure,
    CompletionError,
    ConfigurationError,
    ContentFactoryError,
    DraftFailure,
    InsightFailure,
    UpstreamParseError,
)
from .text import count_words, extract_title, reading_time
from .types import (
    ArticleCover,
    ArticleSummary,
    CacheEntry,
    Draft,
    GeneratedArticle,
    GenerationParameters,
    RawArticle,
    ReferenceArticle,
    Topic,
    TopicInsight,
)

__all__ = [
    "RawArticle",
    "ArticleSummary",
    "TopicInsight",
    "Topic",
    "ReferenceArticle",
    "GenerationParameters",
    "Draft",
    "ArticleCover",
    "GeneratedArticle",
    "CacheEntry",
    "ContentFactoryError",
    "ConfigurationError",
    "CompletionError",
    "UpstreamParseError",
    "AnalysisFailure",
    "InsightFailure",
    "DraftFailure",
    "AssetGenerationError",
    "BatchItemFailure",
    "dedup_articles",
    "count_words",
    "reading_time",
    "extract_title",
]
