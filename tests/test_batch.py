"""Tests for the single-article pipeline and the batch orchestrator."""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging

import pytest

from content_factory.cache import CacheStore, InMemoryKeyValueStore, fingerprint
from content_factory.config import GenerationConfig
from content_factory.core.errors import BatchItemFailure, CompletionError, DraftFailure
from content_factory.core.types import GenerationParameters, Topic
from content_factory.generation import (
    ANGLES,
    ArticlePipeline,
    AssetGenerationStage,
    BatchOrchestrator,
    DraftGenerationStage,
    ImagePromptPlanner,
    unique_angle,
)
from content_factory.utils.delay import NO_DELAY, DelayPolicy

from fakes import ScriptedCompletionProvider, ScriptedImageProvider

DRAFT = "# 职场妈妈的时间管理秘籍\n\n每天早上六点，她已经在厨房里忙碌。\n"
PROMPTS = "清晨办公室窗边，年轻人低头思考的侧视特写，冷蓝色调"
CREATED = datetime(2024, 5, 1, 9, 30)


class RecordingDelay(DelayPolicy):
    def __init__(self):
        super().__init__(0.0)
        self.attempts: list[int] = []

    async def wait(self, attempt: int = 0) -> None:
        self.attempts.append(attempt)


def _params(**overrides) -> GenerationParameters:
    return GenerationParameters(topic=Topic(id="t1", title="职场妈妈的时间管理"), **overrides)


def _pipeline(
    provider: ScriptedCompletionProvider,
    cfg: GenerationConfig | None = None,
    cache: CacheStore | None = None,
    cover_provider: ScriptedImageProvider | None = None,
) -> ArticlePipeline:
    cfg = cfg or GenerationConfig()
    ids = iter(f"article{i:02d}" for i in range(100))
    return ArticlePipeline(
        cfg,
        drafts=DraftGenerationStage(cfg, provider),
        planner=ImagePromptPlanner(cfg, provider),
        assets=AssetGenerationStage(
            cfg,
            ScriptedImageProvider(),
            cover_provider or ScriptedImageProvider(),
            delay=NO_DELAY,
        ),
        cache=cache,
        id_factory=lambda: next(ids),
        clock=lambda: CREATED,
    )


# --- Angles ---


def test_unique_angles_for_a_batch_of_seven():
    angles = [unique_angle(i, 7) for i in range(7)]

    assert angles[:5] == list(ANGLES)
    assert angles[5] == ANGLES[0] + "，结合第2个维度分析"
    assert angles[6] == ANGLES[1] + "，结合第2个维度分析"
    assert len(set(angles)) == 7


def test_small_batches_use_plain_angles():
    assert [unique_angle(i, 3) for i in range(3)] == list(ANGLES[:3])
    assert [unique_angle(i, 5) for i in range(5)] == list(ANGLES)


# --- Pipeline ---


def test_pipeline_assembles_article():
    provider = ScriptedCompletionProvider(DRAFT, PROMPTS)
    cover_provider = ScriptedImageProvider()
    pipeline = _pipeline(provider, cover_provider=cover_provider)

    article = asyncio.run(pipeline.run(_params()))

    assert article.id == "article00"
    assert article.title == "职场妈妈的时间管理秘籍"
    assert article.content == DRAFT
    assert article.topic_id == "t1"
    assert article.created_at == CREATED
    assert article.images == ["https://img.example.com/1.png"]
    assert article.cover is not None
    assert article.cover.url == "https://img.example.com/1.png"
    assert article.reading_time == 1
    assert [call["event"] for call in provider.calls] == ["draft_generation", "image_prompts"]


def test_pipeline_skips_cover_when_disabled():
    cover_provider = ScriptedImageProvider()
    pipeline = _pipeline(
        ScriptedCompletionProvider(DRAFT, PROMPTS),
        cfg=GenerationConfig(generate_cover=False),
        cover_provider=cover_provider,
    )

    article = asyncio.run(pipeline.run(_params()))

    assert article.cover is None
    assert cover_provider.calls == []


def test_pipeline_reuses_cached_article_without_service_calls():
    provider = ScriptedCompletionProvider(DRAFT, PROMPTS)
    cache = CacheStore(InMemoryKeyValueStore())
    pipeline = _pipeline(provider, cache=cache)
    params = _params()

    first = asyncio.run(pipeline.run(params))
    second = asyncio.run(pipeline.run(params))

    assert len(provider.calls) == 2
    assert second.id == first.id
    assert second.title == first.title
    assert second is not first
    assert cache.get(fingerprint(params)) is not None


def test_pipeline_propagates_draft_failure():
    provider = ScriptedCompletionProvider(CompletionError("down", stage="completion"))
    pipeline = _pipeline(provider)

    with pytest.raises(DraftFailure):
        asyncio.run(pipeline.run(_params()))


# --- Batch ---


def test_batch_skips_failed_items_and_reports_progress():
    provider = ScriptedCompletionProvider(
        DRAFT,
        PROMPTS,
        CompletionError("down", stage="completion"),
        DRAFT,
        PROMPTS,
    )
    delay = RecordingDelay()
    orchestrator = BatchOrchestrator(_pipeline(provider), delay=delay)
    progress: list[float] = []

    result = asyncio.run(orchestrator.run(_params(), 3, progress.append))

    assert [a.parameters.unique_angle for a in result.articles] == [ANGLES[0], ANGLES[2]]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert isinstance(failure, BatchItemFailure)
    assert failure.index == 1
    assert failure.unique_angle == ANGLES[1]
    assert isinstance(failure.cause, DraftFailure)
    assert progress == pytest.approx([100 / 3, 200 / 3, 100])
    assert delay.attempts == [0, 1]


def test_batch_injects_angle_into_each_draft_prompt():
    provider = ScriptedCompletionProvider(DRAFT, PROMPTS, DRAFT, PROMPTS)
    orchestrator = BatchOrchestrator(_pipeline(provider), delay=NO_DELAY)

    asyncio.run(orchestrator.run(_params(), 2))

    draft_prompts = [
        call["messages"][-1]["content"]
        for call in provider.calls
        if call["event"] == "draft_generation"
    ]
    assert f"**独特角度**: {ANGLES[0]}" in draft_prompts[0]
    assert f"**独特角度**: {ANGLES[1]}" in draft_prompts[1]


def test_batch_keeps_going_after_unexpected_error(caplog):
    provider = ScriptedCompletionProvider(
        DRAFT, PROMPTS, RuntimeError("transport glitch"), DRAFT, PROMPTS
    )
    orchestrator = BatchOrchestrator(_pipeline(provider), delay=NO_DELAY)

    with caplog.at_level(logging.ERROR):
        result = asyncio.run(orchestrator.run(_params(), 3))

    assert [a.parameters.unique_angle for a in result.articles] == [ANGLES[0], ANGLES[2]]
    failure = result.failures[0]
    assert failure.index == 1
    assert isinstance(failure.cause, RuntimeError)
    assert "transport glitch" in caplog.text
    assert any(record.exc_info for record in caplog.records)
