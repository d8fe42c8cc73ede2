"""
Single-article generation pipeline.

Flow for one GenerationParameters:
1. Cache lookup by fingerprint (a hit skips every service call)
2. Draft generation
3. Image count from the draft length and the requested style
4. Image prompt planning
5. Images and cover, requested together
6. GeneratedArticle assembly and cache write
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from typing import Callable
import uuid

from ..cache import CacheStore, fingerprint
from ..config import GenerationConfig
from ..core.types import ArticleCover, GeneratedArticle, GenerationParameters
from ..llm.tracing import set_span_output, start_span
from ..utils.logging import log_event
from .assets import AssetGenerationStage, effective_image_count
from .draft import DraftGenerationStage
from .image_prompts import ImagePromptPlanner

logger = logging.getLogger(__name__)


def new_article_id() -> str:
    return uuid.uuid4().hex


class ArticlePipeline:
    """Produce one GeneratedArticle, reusing a cached result when available."""

    def __init__(
        self,
        cfg: GenerationConfig,
        drafts: DraftGenerationStage,
        planner: ImagePromptPlanner,
        assets: AssetGenerationStage,
        cache: CacheStore | None = None,
        id_factory: Callable[[], str] = new_article_id,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cfg = cfg
        self.drafts = drafts
        self.planner = planner
        self.assets = assets
        self.cache = cache
        self.id_factory = id_factory
        self.clock = clock

    async def run(self, params: GenerationParameters) -> GeneratedArticle:
        key = fingerprint(params)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                log_event(logger, "Article cache hit", event="article_cache_hit", fingerprint=key)
                return cached

        with start_span(
            "content_factory.article",
            kind="chain",
            input_value={"topic": params.topic.title, "unique_angle": params.unique_angle},
            attributes={"fingerprint": key, "creation_mode": params.creation_mode},
        ) as span:
            draft = await self.drafts.generate(params)
            count = effective_image_count(params.image_style, params.image_count, draft.word_count)
            prompts = await self.planner.plan(draft.title, draft.content, count, params.topic)
            images, cover = await asyncio.gather(
                self.assets.generate_images(prompts, params.image_style, params.image_ratio),
                self._cover(draft.title, draft.content),
            )

            article = GeneratedArticle(
                id=self.id_factory(),
                title=draft.title,
                content=draft.content,
                images=images,
                cover=cover,
                word_count=draft.word_count,
                reading_time=draft.reading_time,
                topic_id=params.topic.id,
                created_at=self.clock(),
                parameters=params,
            )
            set_span_output(
                span,
                {"title": article.title, "images": len(images), "cover": cover is not None},
            )

        log_event(
            logger,
            "Article generated",
            event="article_generated",
            article_id=article.id,
            title=article.title,
            word_count=article.word_count,
            images=len(images),
        )
        if self.cache is not None:
            self.cache.put(key, article, params)
        return article

    async def _cover(self, title: str, content: str) -> ArticleCover | None:
        if not self.cfg.generate_cover:
            return None
        return await self.assets.generate_cover(title, content)
