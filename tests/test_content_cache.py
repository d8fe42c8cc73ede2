"""Tests for the fingerprint-keyed generated-article cache."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from content_factory.cache import (
    CacheStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    build_cache,
    fingerprint,
)
from content_factory.config import CacheConfig
from content_factory.core.types import GeneratedArticle, GenerationParameters, Topic


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _BrokenStore(InMemoryKeyValueStore):
    def get(self, key):
        raise OSError("disk gone")

    def put(self, key, value, ttl=None):
        raise OSError("disk gone")


def _params(**overrides) -> GenerationParameters:
    topic = Topic(id="t1", title="职场妈妈的时间管理", confidence=88)
    return GenerationParameters(topic=topic, **overrides)


def _article(params: GenerationParameters, article_id: str = "a1") -> GeneratedArticle:
    return GeneratedArticle(
        id=article_id,
        title="职场妈妈如何高效管理时间",
        content="正文内容",
        images=["https://img.example.com/1.png"],
        word_count=4,
        reading_time=1,
        topic_id=params.topic.id,
        created_at=datetime(2026, 1, 1, 9, 30),
        parameters=params,
    )


def test_fingerprint_joins_fields_in_fixed_order():
    params = _params()
    assert fingerprint(params) == "t1_1000-1500_专业_2_auto_4:3_"
    angled = replace(params, unique_angle="从实际案例角度分析")
    assert fingerprint(angled).endswith("_从实际案例角度分析")


def test_fingerprint_is_equal_for_equal_fields():
    assert fingerprint(_params(style="轻松")) == fingerprint(_params(style="轻松"))
    assert fingerprint(_params(image_count=3)) != fingerprint(_params(image_count=2))


def test_get_after_put_returns_equivalent_fresh_copies():
    cache = CacheStore(InMemoryKeyValueStore())
    params = _params()
    article = _article(params)
    key = fingerprint(params)

    cache.put(key, article, params)
    first = cache.get(key)
    second = cache.get(key)

    assert first is not None and second is not None
    assert first.to_dict() == article.to_dict()
    assert second.to_dict() == article.to_dict()
    assert first is not second
    first.images.append("https://mutated.example.com")
    assert cache.get(key).images == ["https://img.example.com/1.png"]



def test_cached_copy_keeps_surrounding_whitespace():
    cache = CacheStore(InMemoryKeyValueStore())
    params = _params(style=" 温暖 ", original_inspiration="  清晨的厨房\n")
    article = replace(_article(params), title=" 职场妈妈如何高效管理时间 ")
    key = fingerprint(params)

    cache.put(key, article, params)

    assert cache.get(key) == article


def test_put_overwrites_previous_entry():
    cache = CacheStore(InMemoryKeyValueStore())
    params = _params()
    key = fingerprint(params)

    cache.put(key, _article(params, "first"), params)
    cache.put(key, _article(params, "second"), params)

    assert cache.get(key).id == "second"


def test_expired_entry_is_absent_and_removed():
    clock = _Clock(datetime(2026, 1, 1))
    store = InMemoryKeyValueStore()
    cache = CacheStore(store, ttl=timedelta(days=7), clock=clock)
    params = _params()
    key = fingerprint(params)
    cache.put(key, _article(params), params)

    clock.now += timedelta(days=6)
    assert cache.get(key) is not None

    clock.now += timedelta(days=2)
    assert cache.get(key) is None
    assert store.keys() == []


def test_purge_expired_removes_only_stale_entries():
    clock = _Clock(datetime(2026, 1, 1))
    cache = CacheStore(InMemoryKeyValueStore(), ttl=timedelta(days=7), clock=clock)
    old = _params()
    cache.put(fingerprint(old), _article(old), old)

    clock.now += timedelta(days=5)
    fresh = _params(style="轻松")
    cache.put(fingerprint(fresh), _article(fresh), fresh)

    clock.now += timedelta(days=3)
    assert cache.purge_expired() == 1
    assert cache.get(fingerprint(old)) is None
    assert cache.get(fingerprint(fresh)) is not None


def test_storage_failures_degrade_to_miss_and_noop():
    cache = CacheStore(_BrokenStore())
    params = _params()

    cache.put(fingerprint(params), _article(params), params)
    assert cache.get(fingerprint(params)) is None


def test_json_file_store_persists_entries_across_instances(tmp_path):
    path = tmp_path / "cache" / "content-cache.json"
    params = _params()
    key = fingerprint(params)

    CacheStore(JsonFileKeyValueStore(path)).put(key, _article(params), params)
    reloaded = CacheStore(JsonFileKeyValueStore(path)).get(key)

    assert reloaded is not None
    assert reloaded.title == "职场妈妈如何高效管理时间"
    assert JsonFileKeyValueStore(path).keys() == ["content_" + key]


def test_build_cache_honours_config(tmp_path):
    assert build_cache(CacheConfig(enabled=False)) is None
    assert isinstance(build_cache(CacheConfig(backend="memory")), CacheStore)
    file_cache = build_cache(CacheConfig(backend="file", path=str(tmp_path / "c.json")))
    assert isinstance(file_cache.store, JsonFileKeyValueStore)
    with pytest.raises(ValueError, match="Unsupported cache backend"):
        build_cache(CacheConfig(backend="redis"))
