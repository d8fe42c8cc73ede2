"""Analysis stages: raw articles to summaries, summaries to topic insights."""

from .deep_analysis import DeepAnalysisStage
from .insight_synthesizer import (
    InsightSynthesisStage,
    build_word_cloud,
    compute_stats,
    rank_insights,
)

__all__ = [
    "DeepAnalysisStage",
    "InsightSynthesisStage",
    "build_word_cloud",
    "compute_stats",
    "rank_insights",
]
