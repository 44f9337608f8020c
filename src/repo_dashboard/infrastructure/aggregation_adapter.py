"""Aggregation service adapter — implements the RepositorySource port."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from repo_dashboard.domain.entities import RepositoryList, RepositoryListing, RepositoryRecord
from repo_dashboard.domain.exceptions import UpstreamFetchError

logger = logging.getLogger(__name__)

_USER_AGENT = "repo-dashboard/1.0"


# ── Upstream payload schema ─────────────────────────────────────────────────


class _Lenient(BaseModel):
    """Base for upstream shapes: unknown keys ignored, ``null`` means absent."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class UpstreamOwner(_Lenient):
    login: str


class UpstreamRepository(_Lenient):
    """One repository object as the aggregation service returns it."""

    name: str
    owner: UpstreamOwner
    html_url: str
    description: str | None = None
    default_branch: str = "main"
    created_at: datetime | None = None
    updated_at: datetime | None = None
    topics: list[str] = Field(default_factory=list)
    archived: bool = False
    private: bool = False
    homepage: str | None = None
    stargazers_count: int = 0
    watchers_count: int = 0
    forks_count: int = Field(0, validation_alias=AliasChoices("forks_count", "forks"))
    open_issues_count: int = Field(
        0, validation_alias=AliasChoices("open_issues_count", "open_issues")
    )
    size: int = 0
    language: str | None = None

    def to_record(self) -> RepositoryRecord:
        return RepositoryRecord(
            owner=self.owner.login,
            name=self.name,
            html_url=self.html_url,
            default_branch=self.default_branch,
            description=self.description or None,
            created_at=self.created_at,
            updated_at=self.updated_at,
            topics=tuple(t for t in self.topics if t),
            archived=self.archived,
            private=self.private,
            homepage=self.homepage or None,
            stars=self.stargazers_count,
            watchers=self.watchers_count,
            forks=self.forks_count,
            open_issues=self.open_issues_count,
            size_kb=self.size,
            language=self.language or None,
        )


class UpstreamList(_Lenient):
    """A named grouping of repositories (``owner/name`` references)."""

    name: str
    repositories: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("repositories", "repos")
    )

    def to_list(self) -> RepositoryList:
        return RepositoryList(name=self.name, members=tuple(self.repositories))


# ── Adapter ─────────────────────────────────────────────────────────────────


class AggregationAdapter:
    """Concrete RepositorySource backed by the repository aggregation service."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def fetch_repositories(
        self, username: str, token: str | None = None
    ) -> RepositoryListing:
        """GET {base}/repos/{username} → RepositoryListing."""
        url = f"{self._base_url}/repos/{username}"
        headers = {"Accept": "application/json", "User-Agent": _USER_AGENT}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"Network error fetching {url}: {exc}") from exc

        if not resp.is_success:
            raise UpstreamFetchError(
                f"Failed to fetch repositories for {username}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamFetchError(
                f"Aggregation service returned invalid JSON for {username}"
            ) from exc

        return parse_listing(payload)


def parse_listing(payload: Any) -> RepositoryListing:
    """Translate a raw aggregation payload into a :class:`RepositoryListing`.

    Accepts a bare array of repositories or an object holding one under
    ``repositories`` / ``repos`` plus optional ``lists``.  Individual
    malformed elements are skipped.
    """
    raw_lists: Any = []
    if isinstance(payload, list):
        raw_repos: Any = payload
    elif isinstance(payload, dict):
        raw_repos = payload.get("repositories", payload.get("repos"))
        raw_lists = payload.get("lists") or []
    else:
        raw_repos = None

    if not isinstance(raw_repos, list):
        raise UpstreamFetchError("Aggregation service returned an unrecognised payload shape.")

    records: list[RepositoryRecord] = []
    for item in raw_repos:
        try:
            records.append(UpstreamRepository.model_validate(item).to_record())
        except ValidationError as exc:
            logger.debug("Skipping malformed repository entry: %s", exc.errors()[:1])

    lists: list[RepositoryList] = []
    if isinstance(raw_lists, list):
        for item in raw_lists:
            try:
                lists.append(UpstreamList.model_validate(item).to_list())
            except ValidationError:
                logger.debug("Skipping malformed list entry")

    return RepositoryListing(repositories=tuple(records), lists=tuple(lists))
