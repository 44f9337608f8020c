"""Port: cache store — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class CacheStore(Protocol):
    """Key-value store of rendered dashboards with per-entry time-to-live.

    Expired entries read as absent.  Absence is not an error.
    """

    def get(self, key: str) -> str | None:
        """Return the stored payload, or ``None`` if absent or expired."""
        ...

    def put(self, key: str, content: str, ttl: int) -> None:
        """Store *content* under *key* for *ttl* seconds."""
        ...

    def put_many(self, entries: Mapping[str, str], ttl: int) -> None:
        """Store all *entries* at once, or none of them on failure."""
        ...

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        ...
