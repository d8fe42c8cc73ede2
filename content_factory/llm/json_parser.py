"""Parsing helpers for JSON payloads returned by the completion service."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable

from ..core.errors import UpstreamParseError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(
    r"^\s*```[^\n]*json[^\n]*\n(.*?)^\s*```", re.IGNORECASE | re.DOTALL | re.MULTILINE
)


def parse_json_response(content: str) -> Any:
    """Parse a completion as JSON, tolerating a fenced block or leading prose."""
    if not content or not content.strip():
        raise json.JSONDecodeError("Empty completion", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        return json.loads(_json_candidate(content))


def parse_array_payload(
    content: str,
    key: str,
    stage: str,
    lenient: bool = False,
    item_keys: Iterable[str] = (),
) -> list[dict[str, Any]]:
    """Return the list stored under ``key`` in a JSON object completion.

    Raises:
        UpstreamParseError: If the content is not JSON or ``key`` is not a list.
            With ``lenient`` set, well-formed entries are recovered from a
            broken envelope first and the error is raised only if none are.
    """
    try:
        obj = parse_json_response(content)
    except json.JSONDecodeError as exc:
        if lenient:
            items = recover_objects(content, key, item_keys)
            if items:
                logger.warning(
                    "Recovered %d %s entries from malformed response", len(items), key
                )
                return items
        raise UpstreamParseError(f"response is not valid JSON: {exc}", stage=stage) from exc

    if not isinstance(obj, dict) or not isinstance(obj.get(key), list):
        raise UpstreamParseError(f"response has no '{key}' array", stage=stage)

    items = []
    for position, item in enumerate(obj[key]):
        if not isinstance(item, dict):
            logger.warning("Skipping non-object %s entry at position %d", key, position)
            continue
        items.append(item)
    return items


def recover_objects(content: str, key: str, item_keys: Iterable[str] = ()) -> list[dict[str, Any]]:
    """Decode every well-formed object that follows ``"key"`` in ``content``.

    Objects that carry none of ``item_keys`` (nested fragments of a broken
    entry) are ignored when ``item_keys`` is given.
    """
    wanted = set(item_keys)
    marker = content.find(f'"{key}"')
    pos = content.find("[", marker if marker != -1 else 0)
    if pos == -1:
        return []

    decoder = json.JSONDecoder()
    items: list[dict[str, Any]] = []
    while True:
        brace = content.find("{", pos)
        if brace == -1:
            break
        try:
            obj, end = decoder.raw_decode(content, brace)
        except json.JSONDecodeError:
            pos = brace + 1
            continue
        if isinstance(obj, dict) and (not wanted or wanted.intersection(obj)):
            items.append(obj)
        pos = end
    return items


def _json_candidate(content: str) -> str:
    """A fenced ```json block if there is one, else the outermost braces."""
    fenced = _FENCE_RE.search(content)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()
    start, end = content.find("{"), content.rfind("}")
    if start == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object in completion", content, 0)
    return content[start : end + 1]
