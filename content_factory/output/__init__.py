"""Report and article writers."""

from .renderer import (
    render_analysis_html,
    render_analysis_markdown,
    render_article_markdown,
    write_analysis,
    write_article,
)

__all__ = [
    "render_analysis_html",
    "render_analysis_markdown",
    "render_article_markdown",
    "write_analysis",
    "write_article",
]
