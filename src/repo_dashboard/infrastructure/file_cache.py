"""Disk-backed cache store — implements the CacheStore port.

The whole store is one JSON document::

    {"version": 1, "items": {"<key>": {"content": "...", "expires_at": 1700000000.0}}}

Every write replaces the file atomically (tmp file + ``os.replace``), so a
reader or a crashed writer never observes a half-written batch.

The file is read once, on first use, and then served from memory: the backend
assumes a single process owns the file.  Run one worker per cache file, or
use the memory backend.
"""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from threading import Lock
from typing import Any

from repo_dashboard.domain.exceptions import CacheWriteError

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1


class FileCacheStore:
    """CacheStore persisted to a single JSON file with lazy TTL expiry."""

    def __init__(
        self, cache_file: Path | str, clock: Callable[[], float] = time.time
    ) -> None:
        self._mu = Lock()
        self._cache_file = Path(cache_file)
        self._clock = clock
        self._items: dict[str, dict[str, Any]] = {}
        self._loaded = False

    def get(self, key: str) -> str | None:
        with self._mu:
            self._load_once()
            item = self._items.get(key)
            if item is None:
                return None
            if self._clock() >= float(item.get("expires_at", 0)):
                return None
            content = item.get("content")
            return content if isinstance(content, str) else None

    def put(self, key: str, content: str, ttl: int) -> None:
        self.put_many({key: content}, ttl)

    def put_many(self, entries: Mapping[str, str], ttl: int) -> None:
        with self._mu:
            self._load_once()
            now = self._clock()
            expires_at = now + ttl
            merged = {
                k: v for k, v in self._items.items() if float(v.get("expires_at", 0)) > now
            }
            for key, content in entries.items():
                merged[key] = {"content": content, "expires_at": expires_at}
            self._write(merged)
            self._items = merged

    def delete(self, key: str) -> None:
        with self._mu:
            self._load_once()
            if key not in self._items:
                return
            remaining = {k: v for k, v in self._items.items() if k != key}
            self._write(remaining)
            self._items = remaining

    # ── Persistence ─────────────────────────────────────────────────────

    def _load_once(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        if not self._cache_file.exists():
            return

        try:
            raw = json.loads(self._cache_file.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable cache file %s", self._cache_file)
            return

        items = raw.get("items") if isinstance(raw, dict) else None
        if isinstance(items, dict):
            self._items = {k: v for k, v in items.items() if isinstance(v, dict)}

    def _write(self, items: dict[str, dict[str, Any]]) -> None:
        """Atomically replace the cache file with *items*."""
        document = {"version": _SCHEMA_VERSION, "items": items}
        tmp = self._cache_file.with_name(f"{self._cache_file.name}.tmp.{os.getpid()}")
        try:
            self._cache_file.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(document, separators=(",", ":")), encoding="utf-8")
            os.replace(tmp, self._cache_file)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise CacheWriteError(f"Could not write cache file {self._cache_file}: {exc}") from exc
