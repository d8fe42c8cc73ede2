"""Tests for deep analysis, insight synthesis and the aggregate helpers."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from content_factory.analyzers import (
    DeepAnalysisStage,
    InsightSynthesisStage,
    build_word_cloud,
    compute_stats,
    rank_insights,
)
from content_factory.config import AnalysisConfig
from content_factory.core.errors import (
    AnalysisFailure,
    CompletionError,
    InsightFailure,
    UpstreamParseError,
)
from content_factory.core.types import AnalysisStats, ArticleSummary, RawArticle, TopicInsight

from fakes import ScriptedCompletionProvider


def _summaries_response(*items: dict) -> str:
    return json.dumps({"summaries": list(items)}, ensure_ascii=False)


def _summary(index: int, **fields) -> dict:
    data = {
        "index": index,
        "keyPoints": [f"要点{index}"],
        "keywords": ["时间管理"],
        "targetAudience": "职场妈妈",
        "scenario": "通勤路上",
        "painPoint": "时间不够用",
    }
    data.update(fields)
    return data


def _insight(title: str, confidence: float) -> dict:
    return {"title": title, "description": f"{title}的分析", "confidence": confidence}


# --- Deep analysis ---


def test_deep_analysis_skips_service_for_empty_input():
    provider = ScriptedCompletionProvider()
    stage = DeepAnalysisStage(AnalysisConfig(), provider)

    assert asyncio.run(stage.analyze([])) == []
    assert provider.calls == []


def test_deep_analysis_truncates_content_and_orders_by_index():
    provider = ScriptedCompletionProvider(_summaries_response(_summary(2), _summary(1)))
    stage = DeepAnalysisStage(AnalysisConfig(max_chars=3000), provider)
    articles = [
        RawArticle(title="第一篇", content="长" * 5000, likes=30, reads=1000),
        RawArticle(title="第二篇", content="短文", likes=0, reads=0),
    ]

    summaries = asyncio.run(stage.analyze(articles))

    assert [s.index for s in summaries] == [1, 2]
    assert summaries[0].key_points == ["要点1"]
    call = provider.calls[0]
    prompt = call["messages"][-1]["content"]
    assert call["temperature"] == 0.3
    assert "长" * 3000 in prompt
    assert "长" * 3001 not in prompt
    assert '"engagement": "3.0"' in prompt
    assert '"engagement": "0"' in prompt


def test_deep_analysis_warns_on_missing_audience_fields(caplog):
    response = _summaries_response(_summary(1, targetAudience="", painPoint=None))
    stage = DeepAnalysisStage(AnalysisConfig(), ScriptedCompletionProvider(response))

    with caplog.at_level(logging.WARNING):
        summaries = asyncio.run(stage.analyze([RawArticle(title="A")]))

    assert len(summaries) == 1
    assert "targetAudience, painPoint" in caplog.text


def test_deep_analysis_warns_on_count_mismatch(caplog):
    stage = DeepAnalysisStage(
        AnalysisConfig(), ScriptedCompletionProvider(_summaries_response(_summary(1)))
    )

    with caplog.at_level(logging.WARNING):
        summaries = asyncio.run(stage.analyze([RawArticle(title="A"), RawArticle(title="B")]))

    assert len(summaries) == 1
    assert "returned 1 summaries for 2 articles" in caplog.text


def test_deep_analysis_wraps_completion_errors():
    provider = ScriptedCompletionProvider(CompletionError("timeout", stage="deep_analysis"))
    stage = DeepAnalysisStage(AnalysisConfig(), provider)

    with pytest.raises(AnalysisFailure) as excinfo:
        asyncio.run(stage.analyze([RawArticle(title="A")]))
    assert isinstance(excinfo.value.__cause__, CompletionError)
    assert excinfo.value.stage == "deep_analysis"


def test_deep_analysis_rejects_non_json_response():
    stage = DeepAnalysisStage(AnalysisConfig(), ScriptedCompletionProvider("抱歉，我无法完成"))

    with pytest.raises(AnalysisFailure) as excinfo:
        asyncio.run(stage.analyze([RawArticle(title="A")]))
    assert isinstance(excinfo.value.__cause__, UpstreamParseError)


def test_deep_analysis_lenient_mode_recovers_complete_entries():
    broken = (
        '{"summaries": [{"index": 1, "keyPoints": ["a"]}, '
        '{"index": 2, "keyPoints": ["b"]}, {"index": 3, "keyPo'
    )
    articles = [RawArticle(title=t) for t in ("A", "B", "C")]

    strict = DeepAnalysisStage(AnalysisConfig(), ScriptedCompletionProvider(broken))
    with pytest.raises(AnalysisFailure):
        asyncio.run(strict.analyze(articles))

    lenient = DeepAnalysisStage(
        AnalysisConfig(lenient_json=True), ScriptedCompletionProvider(broken)
    )
    summaries = asyncio.run(lenient.analyze(articles))
    assert [s.key_points for s in summaries] == [["a"], ["b"]]



def test_deep_analysis_tolerates_wrongly_typed_fields(caplog):
    response = _summaries_response(_summary(1, keywords="时间管理, 效率", keyPoints={"a": 1}))
    stage = DeepAnalysisStage(AnalysisConfig(), ScriptedCompletionProvider(response))

    with caplog.at_level(logging.WARNING):
        summaries = asyncio.run(stage.analyze([RawArticle(title="A")]))

    assert summaries[0].keywords == []
    assert summaries[0].key_points == []
    assert summaries[0].target_audience == "职场妈妈"
    assert "Ignoring keywords: expected a list, got str" in caplog.text
    assert "Ignoring keyPoints: expected a list, got dict" in caplog.text


# --- Insight synthesis ---


def test_insight_synthesis_sorts_then_caps_to_ten():
    confidences = [61, 95, 70, 88, 62, 99, 75, 80, 66, 91, 73, 84]
    response = json.dumps(
        {"insights": [_insight(f"洞察{i}", c) for i, c in enumerate(confidences)]},
        ensure_ascii=False,
    )
    provider = ScriptedCompletionProvider(response)
    stage = InsightSynthesisStage(AnalysisConfig(), provider)

    insights = asyncio.run(
        stage.synthesize([ArticleSummary(index=1)], AnalysisStats(total_articles=1))
    )

    assert len(insights) == 10
    assert [i.confidence for i in insights] == sorted(confidences, reverse=True)[:10]
    assert provider.calls[0]["temperature"] == 0.4


def test_rank_insights_cap_before_sort_keeps_response_order_prefix():
    insights = [TopicInsight(title=str(i), confidence=60 + i) for i in range(12)]

    default = rank_insights(insights, max_insights=10)
    legacy = rank_insights(insights, max_insights=10, cap_before_sort=True)

    assert default[0].confidence == 71
    assert legacy[0].confidence == 69
    assert [i.confidence for i in legacy] == sorted((i.confidence for i in legacy), reverse=True)


def test_insight_synthesis_skips_service_for_empty_summaries():
    provider = ScriptedCompletionProvider()
    stage = InsightSynthesisStage(AnalysisConfig(), provider)

    assert asyncio.run(stage.synthesize([], AnalysisStats())) == []
    assert provider.calls == []


def test_insight_synthesis_warns_on_out_of_range_confidence(caplog):
    response = json.dumps({"insights": [{"title": "T", "description": "D", "confidence": 40}]})
    stage = InsightSynthesisStage(AnalysisConfig(), ScriptedCompletionProvider(response))

    with caplog.at_level(logging.WARNING):
        insights = asyncio.run(stage.synthesize([ArticleSummary(index=1)], AnalysisStats()))

    assert insights[0].confidence == 40
    assert "outside the expected 60-100 range" in caplog.text


def test_insight_synthesis_raises_on_missing_array():
    stage = InsightSynthesisStage(
        AnalysisConfig(), ScriptedCompletionProvider('{"topics": []}')
    )

    with pytest.raises(InsightFailure) as excinfo:
        asyncio.run(stage.synthesize([ArticleSummary(index=1)], AnalysisStats()))
    assert isinstance(excinfo.value.__cause__, UpstreamParseError)


def test_insight_synthesis_parses_nested_fields():
    response = json.dumps(
        {
            "insights": [
                {
                    "title": "职场妈妈的时间焦虑",
                    "description": "描述",
                    "confidence": 86,
                    "decisionStage": {"stage": "认知期", "reason": "r"},
                    "audienceScene": {"audience": "职场妈妈", "scene": "通勤"},
                    "demandPainPoint": {"emotionalPain": "焦虑", "expectation": "解决方案"},
                }
            ]
        },
        ensure_ascii=False,
    )
    stage = InsightSynthesisStage(AnalysisConfig(), ScriptedCompletionProvider(response))

    insight = asyncio.run(stage.synthesize([ArticleSummary(index=1)], AnalysisStats()))[0]

    assert insight.decision_stage.stage == "认知期"
    assert insight.audience_scene.audience == "职场妈妈"
    assert insight.demand_pain_point.emotional_pain == "焦虑"
    assert insight.market_potential == "medium"



def test_insight_synthesis_tolerates_wrongly_typed_fields(caplog):
    response = json.dumps(
        {
            "insights": [
                {
                    "title": "职场妈妈的时间焦虑",
                    "description": "描述",
                    "confidence": "85",
                    "decisionStage": "认知期",
                    "audienceScene": ["职场妈妈"],
                    "demandPainPoint": {"emotionalPain": "焦虑"},
                    "tags": "效率",
                }
            ]
        },
        ensure_ascii=False,
    )
    stage = InsightSynthesisStage(AnalysisConfig(), ScriptedCompletionProvider(response))

    with caplog.at_level(logging.WARNING):
        insights = asyncio.run(stage.synthesize([ArticleSummary(index=1)], AnalysisStats()))

    insight = insights[0]
    assert insight.confidence == 85
    assert insight.decision_stage.stage == ""
    assert insight.audience_scene.audience == ""
    assert insight.demand_pain_point.emotional_pain == "焦虑"
    assert insight.tags == []
    assert "Ignoring decisionStage: expected an object, got str" in caplog.text
    assert "Ignoring audienceScene: expected an object, got list" in caplog.text
    assert "outside the expected 60-100 range" in caplog.text


# --- Aggregates ---


def test_compute_stats_rounds_averages_and_formats_engagement():
    stats = compute_stats(
        [
            RawArticle(title="A", likes=10, reads=1000),
            RawArticle(title="B", likes=21, reads=2001),
        ]
    )

    assert stats.total_articles == 2
    assert stats.avg_reads == 1501
    assert stats.avg_likes == 16
    assert stats.avg_engagement == "1.0%"


def test_compute_stats_handles_zero_reads():
    stats = compute_stats([RawArticle(title="A", likes=3, reads=0)])
    assert stats.avg_engagement == "0%"
    assert compute_stats([]).total_articles == 0


def test_build_word_cloud_ranks_keywords_and_shrinks_size():
    summaries = [
        ArticleSummary(keywords=["时间管理", "效率"]),
        ArticleSummary(keywords=["时间管理", "育儿"]),
        ArticleSummary(keywords=["时间管理", "效率"]),
    ]

    cloud = build_word_cloud(summaries)

    assert cloud[0] == {"word": "时间管理", "count": 3, "size": 48}
    assert cloud[1] == {"word": "效率", "count": 2, "size": 46}
    assert cloud[2]["word"] == "育儿"


def test_build_word_cloud_keeps_top_twenty_with_minimum_size():
    summaries = [ArticleSummary(keywords=[f"词{i}" for i in range(30)])]

    cloud = build_word_cloud(summaries)

    assert len(cloud) == 20
    assert cloud[-1]["size"] == 20
