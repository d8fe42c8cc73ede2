"""
Topic insight synthesis and the aggregate figures that feed it.

- compute_stats: engagement averages over the raw articles
- InsightSynthesisStage: one completion turning summaries into ranked insights
- rank_insights: confidence ordering with the configured cap
- build_word_cloud: keyword frequencies for the analysis report
"""

from __future__ import annotations

from collections import Counter
import logging
from typing import Any

from ..config import AnalysisConfig
from ..core.errors import CompletionError, InsightFailure, UpstreamParseError
from ..core.types import AnalysisStats, ArticleSummary, RawArticle, TopicInsight
from ..llm.json_parser import parse_array_payload
from ..llm.prompts import INSIGHT_SYSTEM_PROMPT, build_insight_prompt
from ..llm.providers.base import CompletionProvider
from ..llm.tracing import start_span

logger = logging.getLogger(__name__)

WORD_CLOUD_SIZE = 20


class InsightSynthesisStage:
    """Produce a confidence-ranked, capped list of TopicInsight."""

    def __init__(self, cfg: AnalysisConfig, provider: CompletionProvider) -> None:
        self.cfg = cfg
        self.provider = provider

    async def synthesize(
        self,
        summaries: list[ArticleSummary],
        stats: AnalysisStats,
    ) -> list[TopicInsight]:
        if not summaries:
            return []

        prompt = build_insight_prompt(summaries, stats, self.cfg)
        with start_span(
            "content_factory.insight_synthesis",
            kind="chain",
            input_value={"summaries": len(summaries)},
        ):
            try:
                response = await self.provider.complete(
                    [
                        {"role": "system", "content": INSIGHT_SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.cfg.insight_temperature,
                    event="insight_synthesis",
                    attributes={"summaries.count": len(summaries)},
                )
                items = parse_array_payload(
                    response,
                    "insights",
                    stage="insight_synthesis",
                    lenient=self.cfg.lenient_json,
                    item_keys=("title", "description", "confidence"),
                )
            except (CompletionError, UpstreamParseError) as exc:
                logger.error("Insight synthesis failed: %s", exc)
                raise InsightFailure(
                    f"insight synthesis failed: {exc}", stage="insight_synthesis"
                ) from exc

        if not items:
            logger.warning("Insight synthesis returned no insights")
            return []

        for position, item in enumerate(items):
            _warn_on_invalid_insight(position, item)

        insights = [TopicInsight.from_dict(item) for item in items]
        return rank_insights(insights, self.cfg.max_insights, self.cfg.cap_before_sort)


def rank_insights(
    insights: list[TopicInsight],
    max_insights: int = 10,
    cap_before_sort: bool = False,
) -> list[TopicInsight]:
    """Sort by confidence descending and keep at most ``max_insights``.

    With ``cap_before_sort`` the first ``max_insights`` entries are kept in
    response order and only then sorted, which can drop a higher-confidence
    insight that appeared late in the response.
    """
    if len(insights) > max_insights:
        logger.info("Capping %d insights to %d", len(insights), max_insights)
    else:
        logger.info("Synthesized %d insights", len(insights))

    if cap_before_sort:
        return sorted(insights[:max_insights], key=lambda i: i.confidence, reverse=True)
    return sorted(insights, key=lambda i: i.confidence, reverse=True)[:max_insights]


def _warn_on_invalid_insight(position: int, item: dict[str, Any]) -> None:
    if not item.get("title") or not item.get("description"):
        logger.warning("Insight %d is missing its title or description", position + 1)
    confidence = item.get("confidence")
    numeric = isinstance(confidence, (int, float)) and not isinstance(confidence, bool)
    if not numeric or not 60 <= confidence <= 100:
        logger.warning(
            "Insight %d has confidence %r outside the expected 60-100 range",
            position + 1,
            confidence,
        )


def compute_stats(articles: list[RawArticle]) -> AnalysisStats:
    """Average reads, likes and like/read rate over ``articles``."""
    if not articles:
        return AnalysisStats()
    total_reads = sum(article.reads or 0 for article in articles)
    total_likes = sum(article.likes or 0 for article in articles)
    count = len(articles)
    engagement = f"{total_likes / total_reads * 100:.1f}%" if total_reads > 0 else "0%"
    return AnalysisStats(
        total_articles=count,
        avg_reads=_round_half_up(total_reads / count),
        avg_likes=_round_half_up(total_likes / count),
        avg_engagement=engagement,
    )


def build_word_cloud(summaries: list[ArticleSummary]) -> list[dict[str, Any]]:
    """Top keywords with counts and a display size that shrinks with rank."""
    counts = Counter(keyword for summary in summaries for keyword in summary.keywords)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:WORD_CLOUD_SIZE]
    return [
        {"word": word, "count": count, "size": max(20, 48 - rank * 2)}
        for rank, (word, count) in enumerate(ranked)
    ]


def _round_half_up(value: float) -> int:
    return int(value + 0.5)
