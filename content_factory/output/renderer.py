"""
Rendering of generated articles and analysis reports.

Articles are written as Markdown (cover, body, then the inline images) with
an optional JSON copy. Analysis results are written as ``analysis.json``,
which the generate command reads back, plus Markdown and an HTML page
rendered from a Jinja2 template.
"""

from __future__ import annotations

from datetime import datetime
import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import OutputConfig
from ..core.types import AnalysisResult, GeneratedArticle, RawArticle


def _slugify(value: str) -> str:
    """Convert a title to a filesystem-safe slug.

    Letters, digits and CJK characters are kept; every other run of
    characters becomes a single hyphen.

    Examples:
        >>> _slugify("Hello World!")
        "hello-world"
        >>> _slugify("职场 妈妈：时间管理")
        "职场-妈妈-时间管理"
    """
    lowered = value.strip().lower()
    cleaned = []
    last_dash = False
    for ch in lowered:
        if ch.isalnum():
            cleaned.append(ch)
            last_dash = False
        elif not last_dash:
            cleaned.append("-")
            last_dash = True
    slug = "".join(cleaned).strip("-")
    return slug[:60].rstrip("-") or "article"


def render_article_markdown(article: GeneratedArticle) -> str:
    """Render one generated article as a Markdown document."""
    params = article.parameters
    lines = [f"# {article.title}", ""]
    lines.append(f"- Words: {article.word_count}")
    lines.append(f"- Reading time: {article.reading_time} min")
    lines.append(f"- Topic: {params.topic.title}")
    if params.unique_angle:
        lines.append(f"- Angle: {params.unique_angle}")
    lines.append(f"- Created: {article.created_at.strftime('%Y-%m-%d %H:%M')}")
    lines.append("")

    if article.cover:
        lines.append(f"![{article.cover.description}]({article.cover.url})")
        lines.append("")

    lines.append(article.content.strip())
    lines.append("")

    if article.images:
        lines.append("## 配图")
        lines.append("")
        for idx, url in enumerate(article.images, start=1):
            lines.append(f"![配图 {idx}]({url})")
        lines.append("")

    return "\n".join(lines)


def write_article(article: GeneratedArticle, output_dir: Path, cfg: OutputConfig) -> Path:
    """Write ``article`` under ``output_dir`` and return the primary file."""
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = f"{_slugify(article.title)}-{article.id[:8]}"
    json_path = output_dir / f"{stem}.json"

    if cfg.format == "json":
        _write_json(json_path, article.to_dict())
        return json_path

    md_path = output_dir / f"{stem}.md"
    md_path.write_text(render_article_markdown(article), encoding="utf-8")
    if cfg.include_json:
        _write_json(json_path, article.to_dict())
    return md_path


def analysis_payload(result: AnalysisResult, articles: list[RawArticle]) -> dict[str, Any]:
    """Serialisable form of an analysis run, including the analysed inputs."""
    stats = result.stats
    return {
        "meta": result.meta,
        "stats": {
            "totalArticles": stats.total_articles,
            "avgReads": stats.avg_reads,
            "avgLikes": stats.avg_likes,
            "avgEngagement": stats.avg_engagement,
        },
        "articles": [
            {
                "title": article.title,
                "content": article.content,
                "likes": article.likes,
                "reads": article.reads,
                "url": article.url,
            }
            for article in articles
        ],
        "summaries": [summary.to_dict() for summary in result.summaries],
        "insights": [insight.to_dict() for insight in result.insights],
        "wordCloud": result.word_cloud,
    }


def render_analysis_markdown(result: AnalysisResult, output_path: Path, title: str) -> None:
    """Render an analysis run as a Markdown report.

    Args:
        result: Summaries, ranked insights, word cloud and stats
        output_path: Path where the Markdown file will be written
        title: Report title for the top-level heading
    """
    stats = result.stats
    lines = [f"# {title}", ""]
    lines.append(
        f"Articles: {stats.total_articles} | Avg reads: {stats.avg_reads} | "
        f"Avg likes: {stats.avg_likes} | Engagement: {stats.avg_engagement}"
    )
    lines.append("")

    lines.append("## Insights")
    lines.append("")
    if not result.insights:
        lines.append("No insights were produced.")
        lines.append("")
    for idx, insight in enumerate(result.insights, start=1):
        lines.append(f"### {idx}. {insight.title} ({insight.confidence:g})")
        lines.append("")
        lines.append(insight.description)
        lines.append("")
        if insight.decision_stage.stage:
            lines.append(f"- Decision stage: {insight.decision_stage.stage}")
        if insight.audience_scene.audience:
            lines.append(
                f"- Audience: {insight.audience_scene.audience}"
                f"{(' / ' + insight.audience_scene.scene) if insight.audience_scene.scene else ''}"
            )
        if insight.demand_pain_point.expectation:
            lines.append(f"- Expectation: {insight.demand_pain_point.expectation}")
        if insight.tags:
            lines.append(f"- Tags: {', '.join(insight.tags)}")
        if insight.evidence:
            lines.append("- Evidence:")
            for item in insight.evidence:
                lines.append(f"  - {item}")
        lines.append("")

    if result.word_cloud:
        lines.append("## Keywords")
        lines.append("")
        lines.append(", ".join(f"{item['word']} ({item['count']})" for item in result.word_cloud))
        lines.append("")

    output_path.write_text("\n".join(lines), encoding="utf-8")


def render_analysis_html(result: AnalysisResult, output_path: Path, title: str) -> None:
    """Render an analysis run as an HTML page using the Jinja2 template."""
    env = Environment(
        loader=FileSystemLoader(str(Path(__file__).resolve().parent.parent / "templates")),
        autoescape=select_autoescape(["html"]),
    )
    template = env.get_template("analysis.html")
    html = template.render(
        title=title,
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M"),
        stats=result.stats,
        insights=result.insights,
        summaries=result.summaries,
        word_cloud=result.word_cloud,
    )
    output_path.write_text(html, encoding="utf-8")


def write_analysis(
    result: AnalysisResult,
    articles: list[RawArticle],
    output_dir: Path,
    cfg: OutputConfig,
    title: str = "Content Analysis",
) -> Path:
    """Write ``analysis.json`` and the configured reports; return the JSON path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / "analysis.json"
    _write_json(json_path, analysis_payload(result, articles))
    if cfg.format == "markdown":
        render_analysis_markdown(result, output_dir / "analysis.md", title)
    if cfg.include_html:
        render_analysis_html(result, output_dir / "analysis.html", title)
    return json_path


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
