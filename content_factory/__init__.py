"""
Content Factory - AI-powered article analysis and generation.

This package analyses public-account article exports into ranked topic
insights, then turns a topic into finished articles with diverse image
prompts, generated images and an optional cover.

Main entry point is the CLI via the `content-factory` command.

Example:
    $ content-factory analyze -i articles.json -o output/
    $ content-factory generate -t output/articles/analysis.json --insight 0 -n 3
"""

__all__ = ["__version__", "parse_article_export", "parse_topic", "fingerprint"]
__version__ = "0.1.0"

from .cache.content_cache import fingerprint
from .input.json_parser import parse_article_export, parse_topic
