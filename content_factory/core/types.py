"""
Core data types for the content pipeline.

This module defines the data structures that flow between stages:
- RawArticle: Article as collected from a public account, input to analysis
- ArticleSummary: Structured per-article analysis from the LLM
- TopicInsight / Topic: Ranked topic suggestions and their identified form
- GenerationParameters: Immutable creation request for one article
- Draft / ArticleCover / GeneratedArticle: Generation outputs
- CacheEntry: Stored generated article with its expiry

Wire dictionaries use camelCase keys, matching the JSON exchanged with the
completion service and the cache.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any

logger = logging.getLogger(__name__)


def _str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _text(value: Any, default: str = "") -> str:
    """Like _str but keeps surrounding whitespace, for stored records."""
    return default if value is None else str(value)


def _str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if not isinstance(value, list):
        if value is not None:
            logger.warning("Ignoring %s: expected a list, got %s", key, type(value).__name__)
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def _mapping(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if isinstance(value, dict):
        return value
    if value:
        logger.warning("Ignoring %s: expected an object, got %s", key, type(value).__name__)
    return {}


def _number(value: Any, default: float = 0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return datetime.now()


@dataclass
class RawArticle:
    """An article collected from a public account.

    Attributes:
        title: The article headline
        content: Full or partial body text
        likes: Like count
        reads: Read count
        url: Link to the original article
    """
    title: str
    content: str = ""
    likes: int = 0
    reads: int = 0
    url: str = ""

    @property
    def engagement(self) -> str:
        """Like/read ratio in percent with one decimal, "0" when unread."""
        if self.reads > 0:
            return f"{self.likes / self.reads * 100:.1f}"
        return "0"


@dataclass
class ArticleSummary:
    """Structured analysis of a single article.

    targetAudience, scenario and painPoint feed the insight stage; missing
    values are tolerated and reported as warnings by the analyzer.
    """
    index: int | None = None
    key_points: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)
    engagement_analysis: str = ""
    target_audience: str = ""
    scenario: str = ""
    pain_point: str = ""
    content_angle: str = ""
    emotion_type: str = ""
    writing_style: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArticleSummary:
        index = data.get("index")
        return cls(
            index=index if isinstance(index, int) else None,
            key_points=_str_list(data, "keyPoints"),
            keywords=_str_list(data, "keywords"),
            highlights=_str_list(data, "highlights"),
            engagement_analysis=_str(data.get("engagementAnalysis")),
            target_audience=_str(data.get("targetAudience")),
            scenario=_str(data.get("scenario")),
            pain_point=_str(data.get("painPoint")),
            content_angle=_str(data.get("contentAngle")),
            emotion_type=_str(data.get("emotionType")),
            writing_style=_str(data.get("writingStyle")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "keyPoints": list(self.key_points),
            "keywords": list(self.keywords),
            "highlights": list(self.highlights),
            "engagementAnalysis": self.engagement_analysis,
            "targetAudience": self.target_audience,
            "scenario": self.scenario,
            "painPoint": self.pain_point,
            "contentAngle": self.content_angle,
            "emotionType": self.emotion_type,
            "writingStyle": self.writing_style,
        }


@dataclass
class DecisionStage:
    stage: str = ""
    reason: str = ""


@dataclass
class AudienceScene:
    audience: str = ""
    scene: str = ""
    reason: str = ""


@dataclass
class DemandPainPoint:
    emotional_pain: str = ""
    realistic_pain: str = ""
    expectation: str = ""
    reason: str = ""


@dataclass
class TopicInsight:
    """A ranked topic suggestion produced by insight synthesis.

    Attributes:
        title: Short insight headline
        description: Market and audience analysis
        confidence: Importance index, expected within [60, 100]
        evidence: Titles of supporting articles
        tags: Free-form labels
        decision_stage: Reader journey stage and rationale
        audience_scene: Target audience, usage scene and rationale
        demand_pain_point: Emotional/realistic pain, expectation and rationale
    """
    title: str = ""
    description: str = ""
    confidence: float = 0
    evidence: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    decision_stage: DecisionStage = field(default_factory=DecisionStage)
    audience_scene: AudienceScene = field(default_factory=AudienceScene)
    demand_pain_point: DemandPainPoint = field(default_factory=DemandPainPoint)
    market_potential: str = "medium"
    content_saturation: float = 0
    recommended_format: str = ""
    key_differentiators: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TopicInsight:
        return cls(**_insight_fields(data))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "evidence": list(self.evidence),
            "tags": list(self.tags),
            "decisionStage": {
                "stage": self.decision_stage.stage,
                "reason": self.decision_stage.reason,
            },
            "audienceScene": {
                "audience": self.audience_scene.audience,
                "scene": self.audience_scene.scene,
                "reason": self.audience_scene.reason,
            },
            "demandPainPoint": {
                "emotionalPain": self.demand_pain_point.emotional_pain,
                "realisticPain": self.demand_pain_point.realistic_pain,
                "expectation": self.demand_pain_point.expectation,
                "reason": self.demand_pain_point.reason,
            },
            "marketPotential": self.market_potential,
            "contentSaturation": self.content_saturation,
            "recommendedFormat": self.recommended_format,
            "keyDifferentiators": list(self.key_differentiators),
        }


def _insight_fields(data: dict[str, Any]) -> dict[str, Any]:
    stage = _mapping(data, "decisionStage")
    scene = _mapping(data, "audienceScene")
    pain = _mapping(data, "demandPainPoint")
    return {
        "title": _str(data.get("title")),
        "description": _str(data.get("description")),
        "confidence": _number(data.get("confidence")),
        "evidence": _str_list(data, "evidence"),
        "tags": _str_list(data, "tags"),
        "decision_stage": DecisionStage(
            stage=_str(stage.get("stage")),
            reason=_str(stage.get("reason")),
        ),
        "audience_scene": AudienceScene(
            audience=_str(scene.get("audience")),
            scene=_str(scene.get("scene")),
            reason=_str(scene.get("reason")),
        ),
        "demand_pain_point": DemandPainPoint(
            emotional_pain=_str(pain.get("emotionalPain")),
            realistic_pain=_str(pain.get("realisticPain")),
            expectation=_str(pain.get("expectation")),
            reason=_str(pain.get("reason")),
        ),
        "market_potential": _str(data.get("marketPotential"), "medium"),
        "content_saturation": _number(data.get("contentSaturation")),
        "recommended_format": _str(data.get("recommendedFormat")),
        "key_differentiators": _str_list(data, "keyDifferentiators"),
    }


@dataclass
class Topic(TopicInsight):
    """A TopicInsight that has been saved and given an identity."""
    id: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    source_analysis: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Topic:
        return cls(
            id=_str(data.get("id")),
            created_at=_parse_datetime(data.get("createdAt")),
            source_analysis=_str(data.get("sourceAnalysis")),
            **_insight_fields(data),
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["id"] = self.id
        data["createdAt"] = self.created_at.isoformat()
        data["sourceAnalysis"] = self.source_analysis
        return data


@dataclass(frozen=True)
class ReferenceArticle:
    """A high-performing article used as a rewrite reference."""
    title: str
    summary: str = ""
    reads: int | None = None
    likes: int | None = None
    url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReferenceArticle:
        return cls(
            title=_str(data.get("title")),
            summary=_str(data.get("summary") or data.get("digest")),
            reads=data.get("reads"),
            likes=data.get("likes"),
            url=_str(data.get("url")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "reads": self.reads,
            "likes": self.likes,
            "url": self.url,
        }


@dataclass(frozen=True)
class GenerationParameters:
    """Immutable creation request for a single article.

    Attributes:
        topic: Resolved topic to write about
        length: Length bucket, e.g. "1000-1500"
        style: Free-form writing style label
        image_count: Requested number of inline images
        image_style: Style catalog key or "auto"
        image_ratio: Image ratio catalog key
        creation_mode: "original" or "reference"
        original_inspiration: Inspiration text for original mode
        reference_articles: Reference articles for reference mode
        article_structure: Structure template key for reference mode
        unique_angle: Differentiating angle injected by batch runs
    """
    topic: Topic
    length: str = "1000-1500"
    style: str = "专业"
    image_count: int = 2
    image_style: str = "auto"
    image_ratio: str = "4:3"
    creation_mode: str = "original"
    original_inspiration: str = ""
    reference_articles: tuple[ReferenceArticle, ...] = ()
    article_structure: str | None = None
    unique_angle: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic.to_dict(),
            "length": self.length,
            "style": self.style,
            "imageCount": self.image_count,
            "imageStyle": self.image_style,
            "imageRatio": self.image_ratio,
            "creationMode": self.creation_mode,
            "originalInspiration": self.original_inspiration,
            "referenceArticles": [ref.to_dict() for ref in self.reference_articles],
            "articleStructure": self.article_structure,
            "uniqueAngle": self.unique_angle,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationParameters:
        return cls(
            topic=Topic.from_dict(_mapping(data, "topic")),
            length=_text(data.get("length"), "1000-1500"),
            style=_text(data.get("style"), "专业"),
            image_count=int(data.get("imageCount") or 0),
            image_style=_text(data.get("imageStyle"), "auto") or "auto",
            image_ratio=_text(data.get("imageRatio"), "4:3") or "4:3",
            creation_mode=_text(data.get("creationMode"), "original") or "original",
            original_inspiration=_text(data.get("originalInspiration")),
            reference_articles=tuple(
                ReferenceArticle.from_dict(item)
                for item in data.get("referenceArticles") or []
                if isinstance(item, dict)
            ),
            article_structure=data.get("articleStructure"),
            unique_angle=data.get("uniqueAngle"),
        )


@dataclass(frozen=True)
class Draft:
    title: str
    content: str
    word_count: int
    reading_time: int


@dataclass(frozen=True)
class ArticleCover:
    """Generated cover image and the template it was built from."""
    url: str
    template: str
    title: str
    description: str
    prompt: str
    generated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "template": self.template,
            "title": self.title,
            "description": self.description,
            "prompt": self.prompt,
            "generatedAt": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArticleCover:
        return cls(
            url=_text(data.get("url")),
            template=_text(data.get("template")),
            title=_text(data.get("title")),
            description=_text(data.get("description")),
            prompt=_text(data.get("prompt")),
            generated_at=_parse_datetime(data.get("generatedAt")),
        )


@dataclass(frozen=True)
class GeneratedArticle:
    """Finished article produced by one successful pipeline run."""
    id: str
    title: str
    content: str
    images: list[str]
    word_count: int
    reading_time: int
    topic_id: str
    created_at: datetime
    parameters: GenerationParameters
    cover: ArticleCover | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "images": list(self.images),
            "cover": self.cover.to_dict() if self.cover else None,
            "wordCount": self.word_count,
            "readingTime": self.reading_time,
            "topicId": self.topic_id,
            "createdAt": self.created_at.isoformat(),
            "parameters": self.parameters.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeneratedArticle:
        cover = _mapping(data, "cover")
        return cls(
            id=_text(data.get("id")),
            title=_text(data.get("title")),
            content=data.get("content") or "",
            images=_str_list(data, "images"),
            cover=ArticleCover.from_dict(cover) if cover else None,
            word_count=int(data.get("wordCount") or 0),
            reading_time=int(data.get("readingTime") or 0),
            topic_id=_text(data.get("topicId")),
            created_at=_parse_datetime(data.get("createdAt")),
            parameters=GenerationParameters.from_dict(_mapping(data, "parameters")),
        )


@dataclass
class CacheEntry:
    """A cached article; logically absent once ``expires_at`` has passed."""
    fingerprint: str
    content: GeneratedArticle
    stored_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def to_dict(self) -> dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "content": self.content.to_dict(),
            "storedAt": self.stored_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            fingerprint=_str(data.get("fingerprint")),
            content=GeneratedArticle.from_dict(data["content"]),
            stored_at=_parse_datetime(data.get("storedAt")),
            expires_at=_parse_datetime(data.get("expiresAt")),
        )


@dataclass
class AnalysisStats:
    """Aggregate engagement figures passed to insight synthesis."""
    total_articles: int = 0
    avg_reads: int = 0
    avg_likes: int = 0
    avg_engagement: str = "0%"


@dataclass
class AnalysisResult:
    """Output of the analysis flow for one input export."""
    summaries: list[ArticleSummary] = field(default_factory=list)
    insights: list[TopicInsight] = field(default_factory=list)
    word_cloud: list[dict[str, Any]] = field(default_factory=list)
    stats: AnalysisStats = field(default_factory=AnalysisStats)
    meta: dict[str, Any] = field(default_factory=dict)
