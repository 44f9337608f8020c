"""FastAPI dependency injection wiring."""

from __future__ import annotations

from functools import lru_cache

import httpx
from fastapi import Depends, Request

from repo_dashboard.domain.entities import Viewer
from repo_dashboard.domain.ports.cache_store import CacheStore
from repo_dashboard.infrastructure.aggregation_adapter import AggregationAdapter
from repo_dashboard.infrastructure.config import Settings, get_settings
from repo_dashboard.infrastructure.file_cache import FileCacheStore
from repo_dashboard.infrastructure.github_contents_adapter import GitHubContentsAdapter
from repo_dashboard.infrastructure.memory_cache import MemoryCacheStore
from repo_dashboard.services.config_detector import ConfigDetector
from repo_dashboard.services.dashboard_renderer import DashboardRenderer
from repo_dashboard.services.read_dashboard import DashboardReader
from repo_dashboard.services.refresh_dashboard import RefreshDashboardUseCase

_http_client: httpx.AsyncClient | None = None
_cache_store: CacheStore | None = None
_refresh_use_case: RefreshDashboardUseCase | None = None


def build_cache_store(settings: Settings) -> CacheStore:
    """Construct the configured cache backend."""
    if settings.cache_backend == "file":
        return FileCacheStore(settings.cache_file)
    return MemoryCacheStore()


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _cache_store, _refresh_use_case  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))
    _cache_store = build_cache_store(settings)
    _refresh_use_case = RefreshDashboardUseCase(
        repository_source=AggregationAdapter(_http_client, settings.aggregation_base_url),
        config_detector=ConfigDetector(
            GitHubContentsAdapter(_http_client, settings.github_api_url),
            probe_timeout=settings.probe_timeout_seconds,
        ),
        renderer=DashboardRenderer(
            site_url=settings.site_url,
            stale_after_seconds=settings.stale_after_seconds,
        ),
        cache_store=_cache_store,
        cache_ttl=settings.cache_ttl_seconds,
        probe_concurrency=settings.probe_concurrency,
    )


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _cache_store, _refresh_use_case  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    _cache_store = None
    _refresh_use_case = None


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return get_settings()


def get_viewer(request: Request) -> Viewer | None:
    """Viewer identity as asserted by the authentication layer in front of us.

    The login arrives in the configured header, the credential as a bearer
    token.  A token without a login is ignored.
    """
    login = request.headers.get(_settings().viewer_login_header, "").strip()
    if not login:
        return None

    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return Viewer(login=login)
    return Viewer(login=login, token=token)


def get_cache_store() -> CacheStore:
    assert _cache_store is not None, "startup() was not called"
    return _cache_store


def get_reader(store: CacheStore = Depends(get_cache_store)) -> DashboardReader:
    return DashboardReader(store)


def get_refresh_use_case() -> RefreshDashboardUseCase:
    assert _refresh_use_case is not None, "startup() was not called"
    return _refresh_use_case
