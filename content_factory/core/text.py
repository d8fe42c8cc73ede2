"""Word counting and title helpers shared by the generation stages."""

from __future__ import annotations

import math
import re

DEFAULT_TITLE = "未命名文章"

_CJK_RE = re.compile(r"[\u4e00-\u9fa5]")
_LATIN_RE = re.compile(r"[a-zA-Z]+")
_HEADING_RE = re.compile(r"^#+\s*")

_TITLE_CLEANUPS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\*\*"), ""),
    (re.compile(r"^(主标题|副标题|标题|小标题)[：:]\s*", re.IGNORECASE), ""),
    (re.compile(r"^(（主标题）|【主标题】|《主标题》|（副标题）|【副标题】|《副标题》)"), ""),
    (re.compile(r"[·•]"), ""),
    (re.compile(r"[:：]\s*$"), ""),
    (re.compile(r"^\s*[#【】《》()\[\]{}]\s*"), ""),
    (re.compile(r"\s*[#【】《》()\[\]{}]\s*$"), ""),
    (re.compile(r"\s+"), " "),
]


def count_words(content: str) -> int:
    """CJK ideographs plus runs of Latin letters."""
    return len(_CJK_RE.findall(content)) + len(_LATIN_RE.findall(content))


def reading_time(word_count: int) -> int:
    """Reading minutes at 500 words per minute, never below one."""
    return max(1, math.ceil(word_count / 500))


def clean_title(title: str) -> str:
    for pattern, replacement in _TITLE_CLEANUPS:
        title = pattern.sub(replacement, title)
    return title.strip()


def extract_title(content: str) -> str:
    """Pick a publishable title out of generated article text.

    Headings win when their cleaned length is 8-50 characters; otherwise
    the first plain line of 11-49 characters is used. Failing both, the
    first line is cut to 30 characters.
    """
    lines = [line.strip() for line in content.splitlines() if line.strip()]

    for line in lines:
        if line.startswith("#"):
            title = clean_title(_HEADING_RE.sub("", line))
            if 8 <= len(title) <= 50:
                return title

    for line in lines:
        if not line.startswith("#") and 10 < len(line) < 50:
            return clean_title(line)

    first = clean_title(lines[0]) if lines else ""
    if len(first) > 30:
        return first[:30] + "..."
    return first or DEFAULT_TITLE
