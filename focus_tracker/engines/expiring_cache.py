"""
Expiring key/value cache for onboarding answers staged before a plan exists.

Entries are stored as ``{"value": ..., "expiry": <epoch seconds>}`` in an
injected ``KeyValueStorage``. Expired entries are evicted lazily on read.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Protocol

from focus_tracker.config.runtime import get_runtime_config

QUESTIONNAIRE_KEY = "questionnaire-data"
BIG_ROCKS_KEY = "big-rocks-order"
ONBOARDING_KEY = "focus-tracker-onboarding"

ONBOARDING_KEYS: tuple[str, ...] = (ONBOARDING_KEY, QUESTIONNAIRE_KEY, BIG_ROCKS_KEY)

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemoryKeyValueStorage:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileKeyValueStorage:
    """All keys of one client in a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get_item(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove_item(self, key: str) -> None:
        items = self._read()
        if key in items:
            del items[key]
            self._write(items)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, items: dict[str, Any]) -> None:
        payload = json.dumps(items, ensure_ascii=False, indent=2)
        tmp_path = self.path.with_suffix(".json.tmp")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self.path)


class ExpiringCache:
    def __init__(
        self,
        storage: KeyValueStorage,
        default_ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.default_ttl_seconds = (
            default_ttl_seconds
            if default_ttl_seconds is not None
            else get_runtime_config().cache.default_ttl_seconds
        )
        self._clock = clock

    def save(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        item = {"value": value, "expiry": self._clock() + ttl}
        self.storage.set_item(key, json.dumps(item, ensure_ascii=False))

    def load(self, key: str) -> Any | None:
        raw = self.storage.get_item(key)
        if not raw:
            return None

        try:
            item = json.loads(raw)
            expiry = float(item["expiry"])
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            return None

        if not self._clock() < expiry:
            self.storage.remove_item(key)
            return None
        return item.get("value")

    def remove(self, key: str) -> None:
        self.storage.remove_item(key)


def clear_onboarding(cache: ExpiringCache) -> None:
    for key in ONBOARDING_KEYS:
        cache.remove(key)
