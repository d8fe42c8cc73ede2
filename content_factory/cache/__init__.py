"""Generated-article cache and its key/value storage adapters."""

from __future__ import annotations

from datetime import timedelta

from ..config import CacheConfig
from .content_cache import CacheStore, fingerprint
from .kv import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore


def build_cache(cfg: CacheConfig) -> CacheStore | None:
    """Build the cache described by ``cfg``; ``None`` when caching is disabled."""
    if not cfg.enabled:
        return None
    if cfg.backend == "memory":
        store: KeyValueStore = InMemoryKeyValueStore()
    elif cfg.backend == "file":
        store = JsonFileKeyValueStore(cfg.path)
    else:
        raise ValueError(f"Unsupported cache backend: {cfg.backend}. Supported: file, memory")
    return CacheStore(store, ttl=timedelta(days=cfg.ttl_days))


__all__ = [
    "CacheStore",
    "fingerprint",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "build_cache",
]
