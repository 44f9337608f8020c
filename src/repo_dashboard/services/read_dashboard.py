"""Read path — a single cache lookup, never a fetch."""

from __future__ import annotations

import logging

from repo_dashboard.domain.entities import OutputFormat, Tier, Viewer
from repo_dashboard.domain.ports.cache_store import CacheStore
from repo_dashboard.domain.value_objects import CacheKey, Username
from repo_dashboard.services.visibility import resolve_visibility

logger = logging.getLogger(__name__)


class DashboardReader:
    """Serves rendered dashboards straight from the cache."""

    def __init__(self, cache_store: CacheStore) -> None:
        self._cache = cache_store

    def cache_key(self, username: str, viewer: Viewer | None, fmt: OutputFormat) -> CacheKey:
        """Key a *viewer* reads for *username* in format *fmt*.

        An owner without a credential can never get a private snapshot
        generated, so they read the public tier instead.
        """
        user = Username.from_string(username)
        decision = resolve_visibility(viewer, user)
        tier = decision.tier if decision.use_credential else Tier.PUBLIC
        return CacheKey(user.key, tier, fmt)

    def read(self, username: str, viewer: Viewer | None, fmt: OutputFormat) -> str | None:
        """Return the cached payload, or ``None`` when it needs a refresh."""
        key = self.cache_key(username, viewer, fmt)
        content = self._cache.get(str(key))
        if content is None:
            logger.debug("Cache miss for %s", key)
        return content
