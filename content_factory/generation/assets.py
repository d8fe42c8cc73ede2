"""
Image and cover generation for a finished draft.

Every image prompt is styled, then sent to the image provider concurrently.
A failing image is retried, then replaced by a placeholder URL, so one bad
prompt never affects the others. The cover is optional: any failure yields
no cover rather than an error.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
import time

from ..config import GenerationConfig
from ..core.catalog import CoverTemplate, get_cover_template, get_image_ratio, get_image_style
from ..core.errors import AssetGenerationError
from ..core.types import ArticleCover
from ..llm.prompts import build_cover_prompt
from ..llm.providers.base import ImageProvider
from ..utils.delay import DelayPolicy

logger = logging.getLogger(__name__)

PLACEHOLDER_BASE_URL = "https://picsum.photos/seed"

# Checked in order; business wins over tech, tech over creative, and so on.
_COVER_RULES: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = [
    ("professional", ("商业", "职场", "管理", "创业"), ("商业", "职场")),
    ("tech", ("科技", "技术", "ai", "数字化"), ("科技", "技术")),
    ("creative", ("设计", "创意", "艺术", "美学"), ("设计", "创意")),
    ("lifestyle", ("生活", "情感", "健康", "故事"), ("生活", "情感")),
]

_THEME_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("technology", ("科技", "技术", "ai")),
    ("business", ("商业", "职场", "管理")),
    ("lifestyle", ("生活", "健康", "情感")),
    ("creative", ("设计", "创意", "艺术")),
]

_KEYWORD_SPLIT_RE = re.compile(r"[，。！？；：\s]+")


def calculate_image_count(word_count: int) -> int:
    """Recommended number of inline images for an article of ``word_count`` words."""
    if word_count < 800:
        return 1
    if word_count < 1500:
        return 2
    if word_count < 2500:
        return 3
    return min(4, word_count // 800)


def effective_image_count(image_style: str, requested: int, word_count: int) -> int:
    """``auto`` style follows the length policy; other styles cap the request by it."""
    recommended = calculate_image_count(word_count)
    if image_style == "auto":
        return recommended
    return min(requested, recommended)


def select_cover_template(title: str, content: str) -> CoverTemplate:
    lowered_title = title.lower()
    lowered_content = content.lower()
    for template_id, title_words, content_words in _COVER_RULES:
        if any(word in lowered_title for word in title_words) or any(
            word in lowered_content for word in content_words
        ):
            return get_cover_template(template_id)
    return get_cover_template("professional")


def identify_content_theme(title: str, content: str) -> str:
    text = f"{title} {content}".lower()
    for theme, words in _THEME_RULES:
        if any(word in text for word in words):
            return theme
    return "general"


def extract_content_keywords(title: str, content: str, limit: int = 10) -> list[str]:
    words = _KEYWORD_SPLIT_RE.split(f"{title} {content}")
    return [word for word in words if len(word) >= 2][:limit]


class AssetGenerationStage:
    """Generate inline images and an optional cover for one article."""

    def __init__(
        self,
        cfg: GenerationConfig,
        image_provider: ImageProvider,
        cover_provider: ImageProvider | None = None,
        delay: DelayPolicy | None = None,
        placeholder_base_url: str = PLACEHOLDER_BASE_URL,
    ) -> None:
        self.cfg = cfg
        self.image_provider = image_provider
        self.cover_provider = cover_provider
        self.delay = delay or DelayPolicy(cfg.retry_delay_seconds)
        self.placeholder_base_url = placeholder_base_url.rstrip("/")

    async def generate_images(
        self,
        prompts: list[str],
        image_style: str = "auto",
        image_ratio: str = "4:3",
    ) -> list[str]:
        """Return one image URL per prompt, in prompt order."""
        if not prompts:
            return []
        style = get_image_style(image_style)
        ratio = get_image_ratio(image_ratio)
        size = ratio.size if ratio else None

        results = await asyncio.gather(
            *(
                self._generate_one(style.apply(prompt), index, size)
                for index, prompt in enumerate(prompts)
            ),
            return_exceptions=True,
        )

        images: list[str] = []
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.error(
                    "Image %d failed unexpectedly, using placeholder",
                    index + 1,
                    exc_info=result,
                )
                images.append(self.placeholder_image(index))
            else:
                images.append(result)
        logger.info("Generated %d images with style %s", len(images), style.value)
        return images

    async def _generate_one(self, prompt: str, index: int, size: str | None) -> str:
        attempts = self.cfg.image_retries + 1
        for attempt in range(attempts):
            try:
                return await self.image_provider.generate(prompt, size)
            except AssetGenerationError as exc:
                logger.warning(
                    "Image %d attempt %d/%d failed: %s", index + 1, attempt + 1, attempts, exc
                )
                if attempt < attempts - 1:
                    await self.delay.wait(attempt)
        return self.placeholder_image(index)

    def placeholder_image(self, index: int) -> str:
        """Placeholder URL seeded from the clock, the position and a random token."""
        seed = f"{int(time.time() * 1000)}_{index}_{secrets.token_hex(4)}"
        return f"{self.placeholder_base_url}/{seed}/1024/1024.jpg"

    async def generate_cover(
        self,
        title: str,
        content: str,
        template_id: str | None = None,
    ) -> ArticleCover | None:
        if self.cover_provider is None:
            return None

        template = (
            get_cover_template(template_id) if template_id else select_cover_template(title, content)
        )
        keywords = extract_content_keywords(title, content)
        theme = identify_content_theme(title, content)
        prompt = build_cover_prompt(title, theme, keywords, template)

        try:
            url = await self.cover_provider.generate(prompt)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cover generation failed, continuing without cover: %s", exc)
            return None

        return ArticleCover(
            url=url,
            template=template.id,
            title=title,
            description=f"AI生成的封面 - {template.name}风格",
            prompt=prompt,
        )
