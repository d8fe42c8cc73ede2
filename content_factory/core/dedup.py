"""
Raw article deduplication using URL matching and fuzzy title comparison.

Collected exports often contain the same post twice (re-shares, mirrored
accounts). Duplicates are removed before deep analysis so they do not
inflate the evidence behind a topic insight:
1. Exact URL matches
2. Fuzzy title similarity (same post, different URLs)
"""

from __future__ import annotations

from rapidfuzz import fuzz

from .types import RawArticle


def dedup_articles(articles: list[RawArticle], threshold: int = 92) -> list[RawArticle]:
    """Remove duplicate articles from a list, preserving original order.

    Args:
        articles: Articles to deduplicate
        threshold: Similarity threshold (0-100) for fuzzy title matching

    Returns:
        Deduplicated list; the first occurrence of each article is kept
    """
    seen_urls: set[str] = set()
    kept: list[RawArticle] = []
    titles: list[str] = []

    for article in articles:
        # Articles without a URL are only compared by title
        if article.url and article.url in seen_urls:
            continue
        if _is_similar_title(article.title, titles, threshold):
            continue
        if article.url:
            seen_urls.add(article.url)
        titles.append(article.title)
        kept.append(article)

    return kept


def _is_similar_title(title: str, titles: list[str], threshold: int) -> bool:
    for existing in titles:
        if fuzz.ratio(title, existing) >= threshold:
            return True
    return False
