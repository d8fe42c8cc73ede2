"""
Runtime configuration for the analyze and generate commands.

Every section is a dataclass with working defaults, so the CLI runs without a
config file; a YAML file only needs the fields it changes:

    provider:
      model: openai/gpt-4o-mini
    generation:
      image_retries: 1
    cache:
      backend: memory

Sections: provider (text completion), image and cover (image services),
analysis, generation, cache, output, logging and langfuse.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
import os
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ProviderConfig:
    """Configuration for the text completion provider.

    Attributes:
        name: Provider name ("openai_compatible" currently supported)
        model: Model identifier (e.g., "openai/gpt-4o")
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Read timeout for a completion request
    """

    name: str = "openai_compatible"
    model: str = "openai/gpt-4o"
    api_key_env: str | None = "OPENROUTER_API_KEY"
    base_url: str = "https://openrouter.ai/api/v1"
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 150.0


@dataclass
class ImageProviderConfig:
    """Configuration for an image generation provider.

    Attributes:
        name: Provider name ("siliconflow" or "openai")
        model: Image model identifier
        api_key_env: Environment variable name containing the API key
        base_url: Base URL for the provider API
        api_key: Optional inline API key (overrides env var)
        size: Default request size, used when no ratio mapping applies
        prompt_suffix: Text appended to every prompt sent to the service
        placeholder_base_url: Base URL for placeholder images
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Read timeout for an image request
    """

    name: str = "siliconflow"
    model: str = "Kwai-Kolors/Kolors"
    api_key_env: str | None = "SILICONFLOW_API_KEY"
    base_url: str = "https://api.siliconflow.cn/v1"
    api_key: str | None = None
    size: str = "1024x1024"
    prompt_suffix: str = ", high quality, professional illustration style, no text"
    placeholder_base_url: str = "https://picsum.photos/seed"
    trust_env: bool = True
    timeout_seconds: float = 120.0


def _default_cover_provider() -> ImageProviderConfig:
    return ImageProviderConfig(
        name="openai",
        model="dall-e-3",
        api_key_env="OPENAI_API_KEY",
        base_url="https://api.openai.com/v1",
        size="1792x1024",
        prompt_suffix="",
    )


@dataclass
class AnalysisConfig:
    """Configuration for the article analysis flow.

    Attributes:
        max_chars: Maximum characters of article content sent to the LLM
        analysis_temperature: Sampling temperature for deep analysis
        insight_temperature: Sampling temperature for insight synthesis
        max_insights: Maximum number of insights kept after ranking
        cap_before_sort: Truncate insights before sorting instead of after
        lenient_json: Recover well-formed array entries from a broken envelope
        dedup_enabled: Whether to deduplicate raw articles before analysis
        title_similarity_threshold: Fuzzy match threshold (0-100) for title similarity
    """

    max_chars: int = 3000
    analysis_temperature: float = 0.3
    insight_temperature: float = 0.4
    max_insights: int = 10
    cap_before_sort: bool = False
    lenient_json: bool = False
    dedup_enabled: bool = True
    title_similarity_threshold: int = 92


@dataclass
class GenerationConfig:
    """Configuration for article and asset generation.

    Attributes:
        draft_temperature: Sampling temperature for article drafts
        prompt_temperature: Sampling temperature for image prompt planning
        prompt_content_chars: Characters of draft content used for prompt planning
        min_prompt_chars: Prompt lines of this length or shorter are discarded
        min_shared_elements: Shared vocabulary elements that make two prompts similar
        fallback_max_attempts: Attempts to find a dissimilar fallback prompt
        image_retries: Retries per image after the first failed attempt
        retry_delay_seconds: Delay between image retries
        batch_delay_seconds: Delay between batch iterations
        generate_cover: Whether to generate a cover image
    """

    draft_temperature: float = 0.7
    prompt_temperature: float = 0.7
    prompt_content_chars: int = 2000
    min_prompt_chars: int = 10
    min_shared_elements: int = 3
    fallback_max_attempts: int = 10
    image_retries: int = 2
    retry_delay_seconds: float = 1.0
    batch_delay_seconds: float = 1.0
    generate_cover: bool = True


@dataclass
class CacheConfig:
    """Configuration for the generated-article cache.

    Attributes:
        enabled: Whether to read from/write to the cache
        ttl_days: Time-to-live for cache entries in days
        backend: "file" for a JSON file store, "memory" for a process-local store
        path: Location of the JSON file store
    """

    enabled: bool = True
    ttl_days: int = 7
    backend: str = "file"
    path: str = ".cache/content-cache.json"


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        format: "markdown" or "json"
        include_json: Whether to also write JSON when format is "markdown"
        include_html: Whether to also render the analysis report as HTML
        run_folder_mode: Output subfolder naming ("input", "timestamp", "input_timestamp")
    """

    format: str = "markdown"
    include_json: bool = True
    include_html: bool = True
    run_folder_mode: str = "input"


@dataclass
class LoggingConfig:
    """Run logging written to the console and into the run folder.

    Attributes:
        level: Level name applied to both loggers
        console: Rich console output
        file: Run log file in the run folder
        format: Run log format, "jsonl" or "plain"
        filename: Run log file name
        llm_log_enabled: Separate transcript of completion and image exchanges
        llm_log_detail: "response_only", or "prompt_response" to include prompts
        llm_log_redaction: "none", "redact_content" or "redact_urls"
        llm_log_file: Transcript file name
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "jsonl"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Langfuse tracing of runs, stages and model calls.

    Keys, host, environment and release fall back to the LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY, LANGFUSE_BASE_URL, LANGFUSE_ENVIRONMENT and
    LANGFUSE_RELEASE environment variables.

    Attributes:
        enabled: Turn tracing on
        timeout_seconds: Ingestion request timeout
        redaction: Redaction mode applied to span payloads
        max_text_chars: Span payloads are truncated to this length
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    timeout_seconds: int = 30
    redaction: str = "redact_urls"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    image: ImageProviderConfig = field(default_factory=ImageProviderConfig)
    cover: ImageProviderConfig = field(default_factory=_default_cover_provider)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_API_KEY_ENV_DEFAULTS = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "openai_compatible": "OPENAI_API_KEY",
    "openai-compatible": "OPENAI_API_KEY",
    "siliconflow": "SILICONFLOW_API_KEY",
}


def load_config(path: str | None) -> AppConfig:
    """Build a fresh AppConfig, overlaid with the YAML file at ``path`` if given.

    Top-level YAML keys name config sections (``provider``, ``image``,
    ``cover``, ``analysis`` ...). Unknown sections and fields are logged and
    ignored so an older config file keeps working.

    Raises:
        ValueError: If the file does not contain a mapping
    """
    cfg = AppConfig()
    if not path:
        return cfg

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping of sections")

    for section_name, overrides in raw.items():
        section = getattr(cfg, section_name, None) if section_name in _section_names() else None
        if section is None or not isinstance(overrides, dict):
            logger.warning("Ignoring unknown config section: %s", section_name)
            continue
        _apply_overrides(section_name, section, overrides)
    return cfg


def _section_names() -> set[str]:
    return {f.name for f in fields(AppConfig)}


def _apply_overrides(section_name: str, section: Any, overrides: dict[str, Any]) -> None:
    known = {f.name for f in fields(section)}
    for key, value in overrides.items():
        if key in known:
            setattr(section, key, value)
        else:
            logger.warning("Ignoring unknown config field: %s.%s", section_name, key)


def get_api_key(cfg: ProviderConfig | ImageProviderConfig) -> str | None:
    """Inline key first, then the configured env var, then the provider's usual env var."""
    if cfg.api_key:
        return cfg.api_key
    env_name = cfg.api_key_env or _API_KEY_ENV_DEFAULTS.get(cfg.name.lower(), "OPENAI_API_KEY")
    return os.getenv(env_name)
