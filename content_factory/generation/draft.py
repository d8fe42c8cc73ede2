"""Article draft generation from a topic and creation parameters."""

from __future__ import annotations

import logging

from ..config import GenerationConfig
from ..core.errors import CompletionError, DraftFailure
from ..core.text import count_words, extract_title, reading_time
from ..core.types import Draft, GenerationParameters
from ..llm.prompts import DRAFT_SYSTEM_PROMPT, build_draft_prompt
from ..llm.providers.base import CompletionProvider

logger = logging.getLogger(__name__)


class DraftGenerationStage:
    """Write one article with a single completion call; failures are not retried."""

    def __init__(self, cfg: GenerationConfig, provider: CompletionProvider) -> None:
        self.cfg = cfg
        self.provider = provider

    async def generate(self, params: GenerationParameters) -> Draft:
        prompt = build_draft_prompt(params)
        try:
            content = await self.provider.complete(
                [
                    {"role": "system", "content": DRAFT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.cfg.draft_temperature,
                event="draft_generation",
                attributes={
                    "topic.id": params.topic.id,
                    "creation_mode": params.creation_mode,
                    "unique_angle": params.unique_angle,
                },
            )
        except CompletionError as exc:
            raise DraftFailure(f"draft generation failed: {exc}", stage="draft") from exc

        if not content or not content.strip():
            raise DraftFailure("completion service returned an empty draft", stage="draft")

        title = resolve_title(params, content)
        word_count = count_words(content)
        logger.info("Draft ready: %s (%d words)", title, word_count)
        return Draft(
            title=title,
            content=content,
            word_count=word_count,
            reading_time=reading_time(word_count),
        )


def resolve_title(params: GenerationParameters, content: str) -> str:
    """Reference rewrites keep the first reference title; otherwise extract one."""
    if params.creation_mode == "reference" and params.reference_articles:
        return params.reference_articles[0].title
    return extract_title(content)
