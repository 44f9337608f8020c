"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Tier(str, Enum):
    """Visibility tier of a snapshot and of the cache entries derived from it."""

    PUBLIC = "public"
    PRIVATE = "private"


class OutputFormat(str, Enum):
    """Rendered output flavour."""

    MARKUP = "markup"
    PLAINTEXT = "plaintext"


@dataclass(frozen=True, slots=True)
class BoundResource:
    """A storage binding declared in a deploy config (e.g. a KV namespace)."""

    kind: str
    identifier: str


@dataclass(frozen=True, slots=True)
class DeployConfig:
    """Deployability metadata extracted from a repository's config file."""

    source_file: str
    name: str | None = None
    main: str | None = None
    routes: tuple[str, ...] = ()
    resources: tuple[BoundResource, ...] = ()


@dataclass(frozen=True, slots=True)
class RepositoryRecord:
    """One repository as returned by the aggregation service."""

    owner: str
    name: str
    html_url: str
    default_branch: str = "main"
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    topics: tuple[str, ...] = ()
    archived: bool = False
    private: bool = False
    homepage: str | None = None
    stars: int = 0
    watchers: int = 0
    forks: int = 0
    open_issues: int = 0
    size_kb: int = 0
    language: str | None = None
    deploy_config: DeployConfig | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def is_deployable(self) -> bool:
        return self.deploy_config is not None


@dataclass(frozen=True, slots=True)
class RepositoryList:
    """A named collection of repositories (``owner/name`` references)."""

    name: str
    members: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RepositoryListing:
    """Raw result of one aggregation call, before any partitioning."""

    repositories: tuple[RepositoryRecord, ...]
    lists: tuple[RepositoryList, ...] = ()


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    """Everything one rendered dashboard is built from.

    A ``PUBLIC`` snapshot never contains a record with ``private=True``.
    """

    username: str
    generated_at: datetime
    tier: Tier
    repositories: tuple[RepositoryRecord, ...] = ()
    lists: tuple[RepositoryList, ...] = ()

    def __post_init__(self) -> None:
        if self.tier is Tier.PUBLIC and any(r.private for r in self.repositories):
            raise ValueError("public snapshot must not contain private repositories")

    @property
    def deployable(self) -> tuple[RepositoryRecord, ...]:
        return tuple(r for r in self.repositories if r.is_deployable)

    @property
    def other(self) -> tuple[RepositoryRecord, ...]:
        return tuple(r for r in self.repositories if not r.is_deployable)


@dataclass(frozen=True, slots=True)
class Viewer:
    """Identity established by the external authentication layer."""

    login: str
    token: str | None = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class VisibilityDecision:
    """Outcome of resolving a viewer against a target username."""

    tier: Tier
    is_owner: bool
    credential: str | None = field(default=None, repr=False)

    @property
    def use_credential(self) -> bool:
        return self.credential is not None


@dataclass(frozen=True, slots=True)
class RenderedDashboard:
    """The two output formats rendered from one snapshot."""

    markup: str
    plaintext: str

    def by_format(self) -> dict[OutputFormat, str]:
        return {OutputFormat.MARKUP: self.markup, OutputFormat.PLAINTEXT: self.plaintext}


@dataclass(frozen=True, slots=True)
class RefreshResult:
    """Summary of one completed refresh cycle."""

    username: str
    tier: Tier
    generated_at: datetime
    repository_count: int
    deployable_count: int
    keys: tuple[str, ...] = ()
