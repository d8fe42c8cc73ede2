"""
Fixed catalogs for image styles, image ratios and cover templates.

Each catalog is ordered; the first entry is the fallback for unknown keys.
"""

from __future__ import annotations

from dataclasses import dataclass

from .types import TopicInsight


@dataclass(frozen=True)
class ImageStyle:
    value: str
    label: str
    prompt_template: str

    def apply(self, prompt: str) -> str:
        """Append this style's suffix to an image prompt."""
        if self.value == "auto":
            return prompt + ", professional illustration style, high quality, consistent visual style"
        return f"{prompt}, {self.prompt_template}, high quality, professional illustration, consistent style"


@dataclass(frozen=True)
class ImageRatio:
    value: str
    label: str
    size: str


@dataclass(frozen=True)
class CoverTemplate:
    id: str
    name: str
    prompt_template: str
    background_color: str
    layout: str


IMAGE_STYLES: tuple[ImageStyle, ...] = (
    ImageStyle("auto", "智能选择", "根据文章内容自动选择最适合的插画风格，确保与主题高度相关"),
    ImageStyle(
        "business",
        "商务专业",
        "professional business illustration, clean design, corporate colors, "
        "modern office setting, professional attire",
    ),
    ImageStyle(
        "creative",
        "创意插画",
        "creative artistic illustration, vibrant colors, imaginative style, "
        "artistic elements, creative concept",
    ),
    ImageStyle(
        "minimalist",
        "简约现代",
        "minimalist modern illustration, clean lines, simple colors, "
        "modern aesthetic, professional design",
    ),
    ImageStyle(
        "tech",
        "科技未来",
        "tech futuristic illustration, digital aesthetic, technology elements, "
        "innovative design, sci-fi influence",
    ),
    ImageStyle(
        "lifestyle",
        "生活温馨",
        "warm lifestyle illustration, cozy atmosphere, natural lighting, "
        "human elements, emotional connection",
    ),
)

IMAGE_RATIOS: tuple[ImageRatio, ...] = (
    ImageRatio("2.35:1", "封面 2.35:1", "1280x544"),
    ImageRatio("1:1", "正方形 1:1", "1024x1024"),
    ImageRatio("4:3", "标准 4:3", "1024x768"),
    ImageRatio("16:9", "宽屏 16:9", "1280x720"),
    ImageRatio("3:4", "竖版 3:4", "768x1024"),
    ImageRatio("9:16", "手机屏 9:16", "720x1280"),
)

COVER_TEMPLATES: tuple[CoverTemplate, ...] = (
    CoverTemplate(
        "professional",
        "商务专业",
        "Professional WeChat official account cover image, clean design, business style, "
        "2.35:1 aspect ratio, elegant typography, modern layout, suitable for business content",
        "#1a365d",
        "center",
    ),
    CoverTemplate(
        "creative",
        "创意设计",
        "Creative WeChat cover design, artistic style, vibrant colors, 2.35:1 aspect ratio, "
        "modern typography, creative layout, suitable for design and art content",
        "#f7fafc",
        "bottom",
    ),
    CoverTemplate(
        "lifestyle",
        "生活温馨",
        "Warm lifestyle WeChat cover, cozy atmosphere, soft colors, 2.35:1 aspect ratio, "
        "friendly typography, inviting layout, suitable for lifestyle and emotional content",
        "#fef5e7",
        "center",
    ),
    CoverTemplate(
        "tech",
        "科技未来",
        "Tech futuristic WeChat cover, digital aesthetic, blue tones, 2.35:1 aspect ratio, "
        "modern typography, innovative layout, suitable for technology and digital content",
        "#2b6cb0",
        "center",
    ),
    CoverTemplate(
        "minimal",
        "简约极简",
        "Minimalist WeChat cover, clean design, monochrome palette, 2.35:1 aspect ratio, "
        "elegant typography, simple layout, suitable for premium and minimalist content",
        "#ffffff",
        "top",
    ),
)


def get_image_style(value: str | None) -> ImageStyle:
    for style in IMAGE_STYLES:
        if style.value == value:
            return style
    return IMAGE_STYLES[0]


# Audience keywords mapped to an image style, first match wins.
_AUDIENCE_STYLES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("创业", "老板"), "business"),
    (("设计师", "创作"), "creative"),
    (("程序员", "技术"), "tech"),
    (("妈妈", "宝妈"), "lifestyle"),
)


def recommended_image_style(topic: TopicInsight) -> str:
    """Pick an image style from the topic's target audience, "auto" when nothing matches."""
    audience = topic.audience_scene.audience
    for keywords, style in _AUDIENCE_STYLES:
        if any(keyword in audience for keyword in keywords):
            return style
    return "auto"


def get_image_ratio(value: str | None) -> ImageRatio | None:
    for ratio in IMAGE_RATIOS:
        if ratio.value == value:
            return ratio
    return None


def get_cover_template(template_id: str | None) -> CoverTemplate:
    for template in COVER_TEMPLATES:
        if template.id == template_id:
            return template
    return COVER_TEMPLATES[0]
