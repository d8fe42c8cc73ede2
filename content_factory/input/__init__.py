"""Input parsers for article exports, topics and reference articles."""

from .json_parser import parse_article_export, parse_reference_articles, parse_topic

__all__ = ["parse_article_export", "parse_reference_articles", "parse_topic"]
