"""JSON parsers for the pipeline inputs.

Article exports are lists of public-account articles with engagement
counts:
    {
        "articles": [
            {
                "title": "Article Title",
                "content": "Full text or digest",
                "reads": 12000,
                "likes": 340,
                "url": "https://mp.weixin.qq.com/s/..."
            }
        ]
    }

Raw search results use ``read``/``praise`` for the counts, ``digest`` for
the text and ``short_link`` for the URL; both spellings are accepted.

Topics are either a saved topic object, or an ``analysis.json`` written by
the analyze command, from which one insight is picked by position.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from ..core.types import RawArticle, ReferenceArticle, Topic

logger = logging.getLogger(__name__)


def parse_article_export(data: dict[str, Any]) -> list[RawArticle]:
    """Parse an article export into RawArticle objects.

    Articles without a title are skipped with a warning.

    Raises:
        ValueError: If the JSON is missing the 'articles' key
    """
    if "articles" not in data:
        raise ValueError("Invalid JSON format: missing 'articles' key")

    articles: list[RawArticle] = []
    for position, item in enumerate(data["articles"]):
        title = (item.get("title") or "").strip()
        if not title:
            logger.warning("Skipping article %d: missing title", position + 1)
            continue
        articles.append(
            RawArticle(
                title=title,
                content=item.get("content") or item.get("digest") or "",
                likes=_count(item.get("likes", item.get("praise"))),
                reads=_count(item.get("reads", item.get("read"))),
                url=item.get("url") or item.get("short_link") or "",
            )
        )
    logger.info("Parsed %d articles", len(articles))
    return articles


def parse_topic(data: dict[str, Any], insight_index: int = 0) -> Topic:
    """Build a Topic from a topic object or from an analysis result.

    A topic without an id gets one derived from its title, so repeated runs
    on the same insight share cache entries.

    Raises:
        ValueError: If no insight exists at ``insight_index`` or the topic is not
            an object with a title
    """
    if "topic" in data and isinstance(data["topic"], dict):
        data = data["topic"]
    elif "insights" in data:
        insights = data["insights"] or []
        if not 0 <= insight_index < len(insights):
            raise ValueError(
                f"Invalid insight index {insight_index}: analysis has {len(insights)} insights"
            )
        data = insights[insight_index]

    if not isinstance(data, dict):
        raise ValueError("Invalid topic: expected an object")
    topic = Topic.from_dict(data)
    if not topic.title:
        raise ValueError("Invalid topic: missing 'title'")
    if not topic.id:
        topic.id = "topic_" + hashlib.sha1(topic.title.encode("utf-8")).hexdigest()[:12]
    return topic


def parse_reference_articles(data: Any) -> tuple[ReferenceArticle, ...]:
    """Reference articles from a list or from ``{"articles": [...]}``."""
    items = data.get("articles", []) if isinstance(data, dict) else data
    references = []
    for item in items or []:
        reference = ReferenceArticle.from_dict(item)
        if not reference.title:
            logger.warning("Skipping reference article without a title")
            continue
        references.append(reference)
    return tuple(references)


def _count(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
