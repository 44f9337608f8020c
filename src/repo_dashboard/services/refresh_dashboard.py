"""Refresh-dashboard use case — the only writer to the cache.

One refresh fetches the user's repositories, probes each for a deploy
config, partitions the result into a public snapshot (and, for the
credentialed owner, a private one), renders both formats of each snapshot
and writes every resulting entry in a single batch.  Nothing is written
until everything has rendered, so a failure at any step leaves the
previous cache contents untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone

from repo_dashboard.domain.entities import (
    DashboardSnapshot,
    RefreshResult,
    RepositoryList,
    RepositoryRecord,
    Tier,
    Viewer,
    VisibilityDecision,
)
from repo_dashboard.domain.ports.cache_store import CacheStore
from repo_dashboard.domain.ports.repository_source import RepositorySource
from repo_dashboard.domain.value_objects import CacheKey, Username
from repo_dashboard.services.config_detector import ConfigDetector
from repo_dashboard.services.dashboard_renderer import DashboardRenderer
from repo_dashboard.services.visibility import resolve_visibility

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Snapshot partitioning ───────────────────────────────────────────────────


def build_snapshot(
    username: str,
    generated_at: datetime,
    tier: Tier,
    repositories: Iterable[RepositoryRecord],
    lists: Iterable[RepositoryList] = (),
) -> DashboardSnapshot:
    """Build the snapshot for *tier* from the full (annotated) repository list.

    The public tier drops private repositories.  List memberships are cut
    down to the repositories that made it into the snapshot, and lists left
    empty are dropped, so list metadata cannot name a hidden repository.
    """
    included = tuple(r for r in repositories if tier is Tier.PRIVATE or not r.private)
    present = {r.full_name.lower() for r in included}

    visible_lists: list[RepositoryList] = []
    for lst in lists:
        members = tuple(m for m in lst.members if m.lower() in present)
        if members:
            visible_lists.append(RepositoryList(name=lst.name, members=members))

    return DashboardSnapshot(
        username=username,
        generated_at=generated_at,
        tier=tier,
        repositories=included,
        lists=tuple(visible_lists),
    )


# ── Use case ────────────────────────────────────────────────────────────────


class RefreshDashboardUseCase:
    """Orchestrates fetch → detect → partition → render → cache.

    Parameters
    ----------
    repository_source:
        Adapter for the upstream aggregation service.
    config_detector:
        Probes each repository for a deploy config.
    renderer:
        Pure snapshot → markup/plaintext transform.
    cache_store:
        Destination for the rendered entries.
    cache_ttl:
        Time-to-live, in seconds, for every entry written.
    probe_concurrency:
        Maximum number of repositories probed at the same time.
    clock:
        Source of the snapshot generation timestamp.
    """

    def __init__(
        self,
        repository_source: RepositorySource,
        config_detector: ConfigDetector,
        renderer: DashboardRenderer,
        cache_store: CacheStore,
        cache_ttl: int = 86_400,
        probe_concurrency: int = 8,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if probe_concurrency < 1:
            raise ValueError("probe_concurrency must be at least 1")
        self._source = repository_source
        self._detector = config_detector
        self._renderer = renderer
        self._cache = cache_store
        self._ttl = cache_ttl
        self._concurrency = probe_concurrency
        self._clock = clock
        self._inflight: dict[tuple[str, Tier, bool], asyncio.Task[RefreshResult]] = {}

    # ── Public entry point ──────────────────────────────────────────────

    async def execute(self, username: str, viewer: Viewer | None = None) -> RefreshResult:
        """Regenerate *username*'s dashboard as seen by *viewer*.

        Concurrent calls that would produce the same tiers share one
        in-flight refresh.
        """
        user = Username.from_string(username)
        decision = resolve_visibility(viewer, user)
        key = (user.key, decision.tier, decision.use_credential)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._refresh(user, decision))
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._inflight.pop(key, None))
        else:
            logger.debug("Joining in-flight refresh for %s", user.display)

        return await asyncio.shield(task)

    # ── Pipeline ────────────────────────────────────────────────────────

    async def _refresh(self, user: Username, decision: VisibilityDecision) -> RefreshResult:
        include_private = decision.is_owner and decision.use_credential
        logger.info(
            "Refreshing %s (%s)", user.display, "private+public" if include_private else "public"
        )

        # 1. Raw list; private repositories only come back with a credential
        listing = await self._source.fetch_repositories(user.display, decision.credential)

        # 2. Probe only what some snapshot will show
        candidates = [r for r in listing.repositories if include_private or not r.private]
        annotated = await self._detect_all(candidates, decision.credential)

        # 3. Partition
        generated_at = self._clock()
        snapshots = [
            build_snapshot(user.display, generated_at, Tier.PUBLIC, annotated, listing.lists)
        ]
        if include_private:
            snapshots.append(
                build_snapshot(user.display, generated_at, Tier.PRIVATE, annotated, listing.lists)
            )

        # 4. Render everything before touching the cache
        entries: dict[str, str] = {}
        for snapshot in snapshots:
            # Public pages are shared by every visitor, so they never carry a viewer.
            viewer_login = user.display if snapshot.tier is Tier.PRIVATE else None
            rendered = self._renderer.render(user.display, viewer_login, snapshot)
            for fmt, payload in rendered.by_format().items():
                entries[str(CacheKey(user.key, snapshot.tier, fmt))] = payload

        # 5. One batch: either every entry of this generation lands, or none does
        await asyncio.to_thread(self._cache.put_many, entries, self._ttl)

        top = snapshots[-1]
        logger.info(
            "Refreshed %s: %d repositories, %d deployable",
            user.display,
            len(top.repositories),
            len(top.deployable),
        )
        return RefreshResult(
            username=user.display,
            tier=top.tier,
            generated_at=generated_at,
            repository_count=len(top.repositories),
            deployable_count=len(top.deployable),
            keys=tuple(entries),
        )

    async def _detect_all(
        self, repositories: Sequence[RepositoryRecord], token: str | None
    ) -> list[RepositoryRecord]:
        """Annotate every repository, at most ``probe_concurrency`` at a time."""
        sem = asyncio.Semaphore(self._concurrency)

        async def _detect_one(repo: RepositoryRecord) -> RepositoryRecord:
            async with sem:
                return await self._detector.annotate(repo, token)

        return list(await asyncio.gather(*(_detect_one(r) for r in repositories)))
