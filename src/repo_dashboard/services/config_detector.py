"""Deploy config detection — probe candidate files, parse the first usable one."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import aclosing
from typing import Any

from repo_dashboard.domain.entities import BoundResource, DeployConfig, RepositoryRecord
from repo_dashboard.domain.exceptions import ConfigParseError, ContentFetchError
from repo_dashboard.domain.ports.content_source import ContentSource
from repo_dashboard.services.config_parsers import parse_config

logger = logging.getLogger(__name__)

CANDIDATE_FILES: tuple[str, ...] = ("wrangler.toml", "wrangler.json", "wrangler.jsonc")

# (config key, resource kind, preferred identifier field)
_RESOURCE_BINDINGS: tuple[tuple[str, str, str], ...] = (
    ("kv_namespaces", "kv_namespace", "id"),
    ("r2_buckets", "r2_bucket", "bucket_name"),
    ("d1_databases", "d1_database", "database_name"),
)


class ConfigDetector:
    """Finds and parses a repository's deploy config.

    Candidates are tried in order.  A missing file, a failed or timed-out
    request, or a malformed file all move on to the next candidate; the
    first file that parses wins.
    """

    def __init__(
        self,
        content_source: ContentSource,
        candidates: Sequence[str] = CANDIDATE_FILES,
        probe_timeout: float = 5.0,
    ) -> None:
        self._source = content_source
        self._candidates = tuple(candidates)
        self._timeout = probe_timeout

    async def detect(
        self, repo: RepositoryRecord, token: str | None = None
    ) -> DeployConfig | None:
        """Return the repository's DeployConfig, or ``None`` if it has none."""
        async with aclosing(self._found_files(repo, token)) as found:
            async for file_name, content in found:
                try:
                    data = parse_config(content, file_name)
                except ConfigParseError as exc:
                    logger.debug("Unparseable %s in %s: %s", file_name, repo.full_name, exc)
                    continue
                return extract_deploy_config(data, file_name)
        return None

    async def annotate(
        self, repo: RepositoryRecord, token: str | None = None
    ) -> RepositoryRecord:
        """Return a copy of *repo* carrying its detected DeployConfig (if any)."""
        config = await self.detect(repo, token)
        if config is None:
            return repo
        return dataclasses.replace(repo, deploy_config=config)

    async def _found_files(
        self, repo: RepositoryRecord, token: str | None
    ) -> AsyncIterator[tuple[str, str]]:
        """Yield ``(file_name, content)`` for each candidate that exists, in order."""
        for file_name in self._candidates:
            try:
                content = await asyncio.wait_for(
                    self._source.fetch_file(repo.owner, repo.name, file_name, token),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.debug("Probe for %s in %s timed out", file_name, repo.full_name)
                continue
            except ContentFetchError as exc:
                logger.debug("Probe for %s in %s failed: %s", file_name, repo.full_name, exc)
                continue

            if content is None:
                continue
            yield file_name, content


# ── Extraction ──────────────────────────────────────────────────────────────


def extract_deploy_config(data: Mapping[str, Any], source_file: str) -> DeployConfig:
    """Pull name, entrypoint, route patterns and bindings out of a parsed config."""
    return DeployConfig(
        source_file=source_file,
        name=_str_or_none(data.get("name")),
        main=_str_or_none(data.get("main")),
        routes=_route_patterns(data),
        resources=_bound_resources(data),
    )


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _pattern_of(route: Any) -> str | None:
    if isinstance(route, Mapping):
        return _str_or_none(route.get("pattern"))
    return _str_or_none(route)


def _route_patterns(data: Mapping[str, Any]) -> tuple[str, ...]:
    candidates: list[Any] = []
    routes = data.get("routes")
    if isinstance(routes, list):
        candidates.extend(routes)
    if "route" in data:
        candidates.append(data["route"])

    patterns: list[str] = []
    for route in candidates:
        pattern = _pattern_of(route)
        if pattern is not None and pattern not in patterns:
            patterns.append(pattern)
    return tuple(patterns)


def _bound_resources(data: Mapping[str, Any]) -> tuple[BoundResource, ...]:
    resources: list[BoundResource] = []
    for key, kind, id_field in _RESOURCE_BINDINGS:
        entries = data.get(key)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            identifier = _str_or_none(entry.get(id_field)) or _str_or_none(entry.get("binding"))
            if identifier is not None:
                resources.append(BoundResource(kind=kind, identifier=identifier))
    return tuple(resources)
