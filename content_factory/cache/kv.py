"""
Key/value storage port used by the content cache, with two adapters.

- InMemoryKeyValueStore: process-local dictionary, used by tests and
  one-off runs
- JsonFileKeyValueStore: a single JSON document on disk, used by the CLI

Values are JSON-compatible dictionaries. The ``ttl`` given to ``put`` is
recorded with the value; expiry itself is enforced by the cache.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import copy
import json
import os
from pathlib import Path
import tempfile
from typing import Any


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, value: dict[str, Any], ttl: float | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> list[str]:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store; values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self.ttls: dict[str, float | None] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def put(self, key: str, value: dict[str, Any], ttl: float | None = None) -> None:
        self._data[key] = copy.deepcopy(value)
        self.ttls[key] = ttl

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self.ttls.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """Stores every key in one JSON file, rewritten atomically on change.

    File layout: ``{"<key>": {"value": {...}, "ttl": <seconds or null>}}``.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get(self, key: str) -> dict[str, Any] | None:
        record = self._read().get(key)
        if not isinstance(record, dict):
            return None
        return record.get("value")

    def put(self, key: str, value: dict[str, Any], ttl: float | None = None) -> None:
        data = self._read()
        data[key] = {"value": value, "ttl": ttl}
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Cache file {self.path} does not contain a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cache-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
