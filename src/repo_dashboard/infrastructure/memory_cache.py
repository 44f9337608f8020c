"""In-process cache store — implements the CacheStore port."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from threading import Lock


class MemoryCacheStore:
    """Dict-backed CacheStore with lazy TTL expiry.

    Entries are checked on read; nothing sweeps in the background.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._mu = Lock()
        self._clock = clock
        self._items: dict[str, tuple[str, float]] = {}

    def get(self, key: str) -> str | None:
        with self._mu:
            item = self._items.get(key)
            if item is None:
                return None
            content, expires_at = item
            if self._clock() >= expires_at:
                del self._items[key]
                return None
            return content

    def put(self, key: str, content: str, ttl: int) -> None:
        self.put_many({key: content}, ttl)

    def put_many(self, entries: Mapping[str, str], ttl: int) -> None:
        expires_at = self._clock() + ttl
        staged = {key: (content, expires_at) for key, content in entries.items()}
        with self._mu:
            self._items.update(staged)

    def delete(self, key: str) -> None:
        with self._mu:
            self._items.pop(key, None)
