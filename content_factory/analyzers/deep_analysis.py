"""Deep analysis of collected articles into structured summaries."""

from __future__ import annotations

import logging

from ..config import AnalysisConfig
from ..core.errors import AnalysisFailure, CompletionError, UpstreamParseError
from ..core.types import ArticleSummary, RawArticle
from ..llm.json_parser import parse_array_payload
from ..llm.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from ..llm.providers.base import CompletionProvider
from ..llm.tracing import start_span

logger = logging.getLogger(__name__)

_AUDIENCE_FIELDS = ("targetAudience", "scenario", "painPoint")


class DeepAnalysisStage:
    """Turn raw articles into one ArticleSummary each with a single completion.

    The call is all-or-nothing: a transport failure or an unparseable
    response raises AnalysisFailure and nothing is retried here.
    """

    def __init__(self, cfg: AnalysisConfig, provider: CompletionProvider) -> None:
        self.cfg = cfg
        self.provider = provider

    async def analyze(self, articles: list[RawArticle]) -> list[ArticleSummary]:
        if not articles:
            return []

        prompt = build_analysis_prompt(articles, self.cfg)
        with start_span(
            "content_factory.deep_analysis",
            kind="chain",
            input_value={"articles": len(articles)},
        ):
            try:
                response = await self.provider.complete(
                    [
                        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=self.cfg.analysis_temperature,
                    event="deep_analysis",
                    attributes={"articles.count": len(articles)},
                )
                items = parse_array_payload(
                    response,
                    "summaries",
                    stage="deep_analysis",
                    lenient=self.cfg.lenient_json,
                    item_keys=("keyPoints", "keywords", "targetAudience", "index"),
                )
            except (CompletionError, UpstreamParseError) as exc:
                logger.error("Deep analysis failed: %s", exc)
                raise AnalysisFailure(f"deep analysis failed: {exc}", stage="deep_analysis") from exc

        for position, item in enumerate(items):
            missing = [name for name in _AUDIENCE_FIELDS if not item.get(name)]
            if missing:
                logger.warning(
                    "Summary %d is missing key fields: %s", position + 1, ", ".join(missing)
                )

        summaries = _order_by_index([ArticleSummary.from_dict(item) for item in items])
        if len(summaries) != len(articles):
            logger.warning(
                "Deep analysis returned %d summaries for %d articles",
                len(summaries),
                len(articles),
            )
        return summaries


def _order_by_index(summaries: list[ArticleSummary]) -> list[ArticleSummary]:
    """Order summaries by their 1-based ``index``; unindexed ones keep their place at the end."""
    if not any(summary.index is not None for summary in summaries):
        return summaries
    return sorted(
        summaries,
        key=lambda s: s.index if s.index is not None else float("inf"),
    )
