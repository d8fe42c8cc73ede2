"""
Fingerprint-keyed cache of generated articles.

A generation request is identified by its fingerprint: topic id, length,
style, image count, image style, image ratio and unique angle joined with
underscores. Equal fingerprints imply equivalent requests, so a later
``put`` simply overwrites an earlier one.

Storage failures never escape this module; they are logged and treated as
a cache miss (or a skipped write).
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Callable

from ..core.types import CacheEntry, GeneratedArticle, GenerationParameters
from .kv import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "content_"
DEFAULT_TTL = timedelta(days=7)


def fingerprint(params: GenerationParameters) -> str:
    """Deterministic cache fingerprint for a generation request."""
    parts = [
        params.topic.id,
        params.length,
        params.style,
        str(params.image_count),
        params.image_style or "auto",
        params.image_ratio or "4:3",
        params.unique_angle or "",
    ]
    return "_".join(parts)


class CacheStore:
    """TTL'd cache of GeneratedArticle values on top of a KeyValueStore.

    The store holds a serialised copy of each article; every ``get``
    rebuilds a fresh object, so callers never share state with the cache.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.ttl = ttl
        self.clock = clock

    @staticmethod
    def key_for(fingerprint_value: str) -> str:
        return KEY_PREFIX + fingerprint_value

    def get(self, fingerprint_value: str) -> GeneratedArticle | None:
        key = self.key_for(fingerprint_value)
        try:
            raw = self.store.get(key)
        except Exception:  # noqa: BLE001
            logger.warning("Cache read failed for %s", key, exc_info=True)
            return None
        if raw is None:
            return None

        try:
            entry = CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding unreadable cache entry %s", key, exc_info=True)
            self._delete(key)
            return None

        if entry.is_expired(self.clock()):
            logger.info("Cache entry expired: %s", key)
            self._delete(key)
            return None
        logger.info("Cache hit: %s", key)
        return entry.content

    def put(
        self,
        fingerprint_value: str,
        article: GeneratedArticle,
        params: GenerationParameters | None = None,
    ) -> None:
        key = self.key_for(fingerprint_value)
        now = self.clock()
        entry = CacheEntry(
            fingerprint=fingerprint_value,
            content=article,
            stored_at=now,
            expires_at=now + self.ttl,
        )
        value = entry.to_dict()
        value["parameters"] = (params or article.parameters).to_dict()
        try:
            self.store.put(key, value, self.ttl.total_seconds())
        except Exception:  # noqa: BLE001
            logger.warning("Cache write failed for %s", key, exc_info=True)
            return
        logger.info("Cached %s until %s", key, entry.expires_at.isoformat())

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self.clock()
        removed = 0
        try:
            keys = [key for key in self.store.keys() if key.startswith(KEY_PREFIX)]
        except Exception:  # noqa: BLE001
            logger.warning("Cache purge could not list keys", exc_info=True)
            return 0

        for key in keys:
            try:
                raw = self.store.get(key)
                expired = raw is None or CacheEntry.from_dict(raw).is_expired(now)
            except (KeyError, TypeError, ValueError):
                expired = True
            except Exception:  # noqa: BLE001
                logger.warning("Cache purge could not read %s", key, exc_info=True)
                continue
            if expired and self._delete(key):
                removed += 1

        if removed:
            logger.info("Purged %d expired cache entries", removed)
        return removed

    def _delete(self, key: str) -> bool:
        try:
            self.store.delete(key)
        except Exception:  # noqa: BLE001
            logger.warning("Cache delete failed for %s", key, exc_info=True)
            return False
        return True
