"""
Image prompt planning with a diversity check over a controlled vocabulary.

The planner asks the completion service for N scene descriptions, then the
validator replaces any prompt that looks like an earlier one:
- two prompts are similar when their normalised text is identical, or when
  they share at least ``min_shared_elements`` vocabulary entries
- the later prompt of a similar pair is swapped for a fallback scene drawn
  from a fixed table, re-checked against every other prompt
- after ``max_attempts`` the last fallback is accepted even if it is still
  similar, so the loop always terminates

The result always holds exactly N prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from ..config import GenerationConfig
from ..core.errors import CompletionError
from ..core.types import Topic
from ..llm.prompts import IMAGE_PROMPT_SYSTEM_PROMPT, build_image_prompts_prompt
from ..llm.providers.base import CompletionProvider

logger = logging.getLogger(__name__)

LOCATIONS = ("办公室", "会议室", "咖啡馆", "公园", "家里", "室外", "室内", "城市", "街道")
TIMES = ("清晨", "早晨", "下午", "傍晚", "夜晚", "深夜", "白天", "黑夜")
PEOPLE = ("年轻人", "中年人", "老人", "男人", "女人", "团队", "群体", "单人", "双人")
ACTIONS = ("思考", "讨论", "工作", "学习", "庆祝", "休息", "交流", "合作", "创新")
PERSPECTIVES = ("特写", "远景", "近景", "俯视", "仰视", "平视", "侧视")

VOCABULARY = LOCATIONS + TIMES + PEOPLE + ACTIONS + PERSPECTIVES

_NORMALIZE_RE = re.compile(r"[^\w\u4e00-\u9fa5]")


@dataclass(frozen=True)
class FallbackScenario:
    time: str
    location: str
    person: str
    action: str
    perspective: str
    mood: str

    def render(self, modifier: str = "") -> str:
        place = self.location if self.location.endswith("里") else self.location + "里"
        return (
            f"{self.time}{place}，{self.person}{modifier}{self.action}"
            f"的{self.perspective}场景，{self.mood}"
        )


FALLBACK_SCENARIOS = (
    FallbackScenario("清晨", "办公室", "年轻职员", "沉思", "特写", "冷蓝色调"),
    FallbackScenario("下午", "咖啡馆", "两位创业者", "讨论", "中景", "暖橙色调"),
    FallbackScenario("傍晚", "公园", "思考者", "散步", "远景", "中性灰色调"),
    FallbackScenario("夜晚", "会议室", "团队成员", "庆祝", "仰视", "明亮金色调"),
    FallbackScenario("深夜", "家里", "创作者", "写作", "俯视", "柔和紫色调"),
)

RETRY_MODIFIERS = ("安静地", "专注地", "热烈地", "轻松地", "认真地")


def normalize_prompt(prompt: str) -> str:
    return _NORMALIZE_RE.sub("", prompt.lower())


def extract_key_elements(prompt: str) -> list[str]:
    """Vocabulary entries that occur in ``prompt``, in vocabulary order."""
    return [word for word in VOCABULARY if word in prompt]


def fallback_prompt(index: int, attempt: int = 0) -> str:
    """Fallback scene for position ``index``.

    Attempt 0 renders the scene at ``index``; later attempts move to the
    next scenes in the table and add a manner modifier.
    """
    if attempt == 0:
        return FALLBACK_SCENARIOS[index % len(FALLBACK_SCENARIOS)].render()
    scenario = FALLBACK_SCENARIOS[(index + attempt) % len(FALLBACK_SCENARIOS)]
    modifier = RETRY_MODIFIERS[(index + attempt) % len(RETRY_MODIFIERS)]
    return scenario.render(modifier)


class PromptDiversityValidator:
    """Replace similar prompts with fallback scenes, with a bounded retry."""

    def __init__(self, min_shared_elements: int = 3, max_attempts: int = 10) -> None:
        self.min_shared_elements = min_shared_elements
        self.max_attempts = max_attempts

    def is_similar(self, first: str, second: str) -> bool:
        if normalize_prompt(first) == normalize_prompt(second):
            return True
        shared = set(extract_key_elements(first)) & set(extract_key_elements(second))
        return len(shared) >= self.min_shared_elements

    def validate(self, prompts: list[str]) -> list[str]:
        """Return ``prompts`` with the later member of every similar pair replaced."""
        result = list(prompts)
        duplicates: list[int] = []
        for i in range(len(prompts)):
            for j in range(i + 1, len(prompts)):
                if j not in duplicates and self.is_similar(prompts[i], prompts[j]):
                    duplicates.append(j)

        for index in duplicates:
            others = result[:index] + result[index + 1 :]
            replacement = self.unique_fallback(index, others)
            logger.info("Replacing similar image prompt %d", index + 1)
            result[index] = replacement
        return result

    def pad(self, prompts: list[str], count: int) -> list[str]:
        """Append fallback scenes until there are ``count`` prompts."""
        result = list(prompts)
        while len(result) < count:
            result.append(self.unique_fallback(len(result), result))
        return result

    def unique_fallback(self, index: int, existing: list[str]) -> str:
        candidate = fallback_prompt(index)
        attempts = 0
        while self._collides(candidate, existing) and attempts < self.max_attempts:
            attempts += 1
            candidate = fallback_prompt(index, attempts)
        if self._collides(candidate, existing):
            logger.warning(
                "Accepting fallback prompt %d after %d attempts although it is still similar",
                index + 1,
                attempts,
            )
        return candidate

    def _collides(self, candidate: str, existing: list[str]) -> bool:
        return any(self.is_similar(other, candidate) for other in existing)


class ImagePromptPlanner:
    """Plan exactly N diverse image prompts for a draft."""

    def __init__(
        self,
        cfg: GenerationConfig,
        provider: CompletionProvider,
        validator: PromptDiversityValidator | None = None,
    ) -> None:
        self.cfg = cfg
        self.provider = provider
        self.validator = validator or PromptDiversityValidator(
            min_shared_elements=cfg.min_shared_elements,
            max_attempts=cfg.fallback_max_attempts,
        )

    async def plan(
        self,
        title: str,
        content: str,
        count: int,
        topic: Topic | None = None,
    ) -> list[str]:
        if count <= 0:
            return []

        prompt = build_image_prompts_prompt(
            title, content, count, self.cfg.prompt_content_chars, topic
        )
        try:
            response = await self.provider.complete(
                [
                    {"role": "system", "content": IMAGE_PROMPT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.cfg.prompt_temperature,
                event="image_prompts",
                attributes={"images.count": count},
            )
        except CompletionError as exc:
            logger.warning("Image prompt request failed, using fallback scenes: %s", exc)
            return self.validator.pad([], count)

        candidates = parse_prompt_lines(response, count, self.cfg.min_prompt_chars)
        prompts = self.validator.validate(candidates)
        if len(prompts) < count:
            logger.info("Padding %d missing image prompts", count - len(prompts))
            prompts = self.validator.pad(prompts, count)
        return prompts


def parse_prompt_lines(response: str, count: int, min_chars: int = 10) -> list[str]:
    """Non-empty response lines longer than ``min_chars``, at most ``count``."""
    lines = [line.strip() for line in response.splitlines()]
    return [line for line in lines if len(line) > min_chars][:count]
