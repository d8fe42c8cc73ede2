"""Prompt loading and rendering helpers for the completion service."""

from __future__ import annotations

from functools import lru_cache
import json
from pathlib import Path
from typing import Any

import yaml

from ..config import AnalysisConfig
from ..core.catalog import CoverTemplate
from ..core.types import AnalysisStats, ArticleSummary, GenerationParameters, RawArticle, Topic


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"

ANALYSIS_SYSTEM_PROMPT = "你是一个专业的内容深度分析专家，擅长从文章中提取结构化信息，只输出JSON格式数据。"
INSIGHT_SYSTEM_PROMPT = "你是顶级的内容选题策划专家，擅长从数据分析中提炼出具有商业价值的选题洞察，只输出JSON格式数据。"
DRAFT_SYSTEM_PROMPT = "你是专业的文章创作者，擅长基于深度洞察生成高质量内容。你的文章结构清晰，内容实用，语言优美。"
IMAGE_PROMPT_SYSTEM_PROMPT = (
    "你是顶级插画提示词专家，专门生成完全不同的场景描述。每张图片都必须有独特的视觉识别，"
    "确保时间、地点、人物、视角、情绪、动作都完全不同。只输出简洁的提示词，不要解释。"
)

_WORD_RANGES = {
    "500": "400-500",
    "500-800": "600-800",
    "800-1200": "900-1200",
    "1000-1500": "1200-1500",
    "1500-2000": "1600-2000",
    "2000+": "2000-2500",
}
_DEFAULT_WORD_RANGE = "1200-1500"

_TONE_BY_STAGE = {
    "觉察期": "温和引导，富有同理心",
    "认知期": "专业权威，条理清晰",
    "调研期": "客观对比，数据支撑",
    "决策期": "鼓励行动，给予信心",
    "行动期": "实用指导，步骤清晰",
    "成果期": "激励分享，展示价值",
}

_STRUCTURE_BY_STAGE = {
    "觉察期": "问题引入 → 现状分析 → 启发思考",
    "认知期": "概念解释 → 核心要点 → 实用建议",
    "调研期": "对比分析 → 优缺点总结 → 选择指导",
    "决策期": "目标设定 → 行动步骤 → 激励鼓舞",
    "行动期": "问题识别 → 解决方案 → 注意事项",
    "成果期": "成果展示 → 经验总结 → 提升方向",
}

# Checked in order; the first matching keyword group wins.
_CASE_TYPE_RULES = [
    (("职场妈妈", "宝妈"), "真实故事案例，生活化场景"),
    (("程序员", "技术"), "技术实践案例，数据驱动"),
    (("设计师", "创作"), "设计作品案例，视觉展示"),
    (("创业", "老板"), "商业实战案例，ROI导向"),
]

_INTERACTION_RULES = [
    (("解决方案", "指导"), "提供可操作步骤，引导实践"),
    (("心理安慰", "鼓励"), "情感共鸣，积极引导"),
    (("学习", "技能"), "知识讲解，技能训练"),
]


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: Any) -> str:
    template = _load_template(name)
    return template.format(**values)


@lru_cache(maxsize=None)
def _load_structures() -> dict[str, str]:
    path = _PROMPT_DIR / "structures.yaml"
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return {str(key): str(value).strip() for key, value in data.items()}


def available_structures() -> list[str]:
    return list(_load_structures())


def structure_template(structure_type: str | None) -> str:
    """Structure instructions for ``structure_type``; unknown types fall back to auto."""
    structures = _load_structures()
    return structures.get(structure_type or "auto", structures["auto"])


def word_count_range(length: str) -> str:
    return _WORD_RANGES.get(length, _DEFAULT_WORD_RANGE)


def recommended_tone(stage: str) -> str:
    return _TONE_BY_STAGE.get(stage, "专业客观")


def recommended_structure(stage: str) -> str:
    return _STRUCTURE_BY_STAGE.get(stage, "标准结构")


def recommended_case_type(audience: str) -> str:
    return _first_match(audience, _CASE_TYPE_RULES, "通用实用案例")


def recommended_interaction(expectation: str) -> str:
    return _first_match(expectation, _INTERACTION_RULES, "信息分享，启发思考")


def _first_match(text: str, rules: list[tuple[tuple[str, ...], str]], default: str) -> str:
    for keywords, value in rules:
        if any(keyword in text for keyword in keywords):
            return value
    return default


def build_analysis_prompt(articles: list[RawArticle], cfg: AnalysisConfig) -> str:
    payload = [
        {
            "index": idx + 1,
            "title": article.title,
            "content": (article.content or "")[: cfg.max_chars],
            "likes": article.likes,
            "reads": article.reads,
            "engagement": article.engagement,
        }
        for idx, article in enumerate(articles)
    ]
    return _render_template(
        "deep_analysis",
        count=len(articles),
        articles_json=json.dumps(payload, ensure_ascii=False),
    )


def build_insight_prompt(
    summaries: list[ArticleSummary],
    stats: AnalysisStats,
    cfg: AnalysisConfig,
) -> str:
    return _render_template(
        "insight_synthesis",
        count=len(summaries),
        summaries_json=json.dumps([s.to_dict() for s in summaries], ensure_ascii=False),
        total_articles=stats.total_articles,
        avg_reads=stats.avg_reads,
        avg_likes=stats.avg_likes,
        avg_engagement=stats.avg_engagement,
        max_insights=cfg.max_insights,
    )


def build_writing_style_prompt(topic: Topic) -> str:
    stage = topic.decision_stage.stage or "未知"
    audience = topic.audience_scene.audience or "大众用户"
    expectation = topic.demand_pain_point.expectation or "解决问题"
    return _render_template(
        "writing_style",
        stage=stage,
        stage_reason=topic.decision_stage.reason or "暂无分析",
        audience=audience,
        scene=topic.audience_scene.scene or "日常使用",
        emotional_pain=topic.demand_pain_point.emotional_pain or "无明显痛点",
        realistic_pain=topic.demand_pain_point.realistic_pain or "基本需求",
        expectation=expectation,
        tone=recommended_tone(stage),
        structure=recommended_structure(stage),
        case_type=recommended_case_type(audience),
        interaction=recommended_interaction(expectation),
    )


def build_mode_prompt(params: GenerationParameters) -> str:
    """Framing text for reference rewrites or inspiration-led originals."""
    if params.creation_mode == "reference" and params.reference_articles:
        blocks = []
        for idx, ref in enumerate(params.reference_articles):
            reads = ref.reads if ref.reads is not None else "N/A"
            likes = ref.likes if ref.likes is not None else "N/A"
            blocks.append(
                f"**对标文章{idx + 1}**:\n标题：{ref.title}\n摘要：{ref.summary}\n"
                f"数据：{reads}阅读，{likes}点赞"
            )
        return _render_template("reference_mode", articles_info="\n\n".join(blocks))
    if params.creation_mode == "original" and params.original_inspiration:
        return _render_template("original_mode", inspiration=params.original_inspiration)
    return ""


def build_draft_prompt(params: GenerationParameters) -> str:
    topic = params.topic
    structure_prompt = ""
    if params.creation_mode == "reference" and params.article_structure:
        structure_prompt = structure_template(params.article_structure)
    return _render_template(
        "article_draft",
        mode_label="对标创作模式" if params.creation_mode == "reference" else "原创创作模式",
        topic_title=topic.title,
        topic_description=topic.description,
        confidence=_format_confidence(topic.confidence),
        angle_line=f"**独特角度**: {params.unique_angle}" if params.unique_angle else "",
        style_prompt=build_writing_style_prompt(topic),
        structure_prompt=structure_prompt,
        mode_prompt=build_mode_prompt(params),
        word_range=word_count_range(params.length),
        style=params.style,
    )


def build_image_prompts_prompt(
    title: str,
    content: str,
    count: int,
    max_chars: int,
    topic: Topic | None = None,
) -> str:
    excerpt = content if len(content) <= max_chars else content[:max_chars] + "..."
    topic_hint = ""
    if topic is not None and (topic.audience_scene.audience or topic.audience_scene.scene):
        topic_hint = (
            f"目标人群：{topic.audience_scene.audience or '大众用户'}，"
            f"典型场景：{topic.audience_scene.scene or '日常使用'}"
        )
    return _render_template(
        "image_prompts",
        count=count,
        title=title,
        content=excerpt,
        topic_hint=topic_hint,
    )


def build_cover_prompt(
    title: str,
    theme: str,
    keywords: list[str],
    template: CoverTemplate,
) -> str:
    return _render_template(
        "cover",
        title=title,
        theme=theme,
        keywords=", ".join(keywords[:3]),
        template_name=template.name,
        template_prompt=template.prompt_template,
        background_color=template.background_color,
        layout=template.layout,
    )


def _format_confidence(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
