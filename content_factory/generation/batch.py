"""Sequential batch generation of several articles on one topic."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Callable

from ..core.errors import BatchItemFailure, ContentFactoryError
from ..core.types import GeneratedArticle, GenerationParameters
from ..utils.delay import DelayPolicy
from .pipeline import ArticlePipeline

logger = logging.getLogger(__name__)

ANGLES = (
    "从实际案例角度分析",
    "从理论框架角度阐述",
    "从操作步骤角度说明",
    "从常见问题角度解答",
    "从未来趋势角度展望",
)


def unique_angle(index: int, count: int) -> str:
    """Angle for batch item ``index`` out of ``count``.

    The first pass over the table uses the plain angles; later passes add
    a dimension suffix so every item in the batch gets a distinct angle.
    """
    angle = ANGLES[index % len(ANGLES)]
    if count > len(ANGLES) and index >= len(ANGLES):
        return f"{angle}，结合第{index // len(ANGLES) + 1}个维度分析"
    return angle


@dataclass
class BatchResult:
    articles: list[GeneratedArticle] = field(default_factory=list)
    failures: list[BatchItemFailure] = field(default_factory=list)


class BatchOrchestrator:
    """Run the article pipeline once per angle, strictly one after another."""

    def __init__(self, pipeline: ArticlePipeline, delay: DelayPolicy | None = None) -> None:
        self.pipeline = pipeline
        self.delay = delay or DelayPolicy(pipeline.cfg.batch_delay_seconds)

    async def run(
        self,
        params: GenerationParameters,
        count: int,
        on_progress: Callable[[float], None] | None = None,
    ) -> BatchResult:
        result = BatchResult()
        for index in range(count):
            angle = unique_angle(index, count)
            try:
                article = await self.pipeline.run(replace(params, unique_angle=angle))
            except Exception as exc:
                # Only untyped errors are logged with a traceback.
                failure = BatchItemFailure(index, angle, exc)
                logger.error(
                    "Skipping failed batch item: %s",
                    failure,
                    exc_info=not isinstance(exc, ContentFactoryError),
                )
                result.failures.append(failure)
            else:
                result.articles.append(article)

            if on_progress is not None:
                on_progress((index + 1) / count * 100)
            if index < count - 1:
                await self.delay.wait(index)

        logger.info(
            "Batch finished: %d generated, %d failed", len(result.articles), len(result.failures)
        )
        return result
