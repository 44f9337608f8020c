"""Dashboard renderer — pure transform from a snapshot to markup + plaintext.

Nothing here touches the network, the cache or the clock: the only
timestamp shown is the snapshot's own ``generated_at``, so identical inputs
always render byte-identical output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from repo_dashboard.domain.entities import (
    DashboardSnapshot,
    RenderedDashboard,
    RepositoryRecord,
)

_TEMPLATES_DIR = Path(__file__).parent / "templates"

PLACEHOLDER = "—"
ACCOUNT_PLACEHOLDER = ":account"

_DASH = "https://dash.cloudflare.com"
_EDITOR = "https://github.dev"
_REFERENCE = "https://uithub.com"
_CHAT = "https://lmpify.com"

_MD_SPECIAL_RE = re.compile(r"([\\`*_{}\[\]<>()#+!|])")
_MD_URL_UNSAFE = {" ": "%20", "(": "%28", ")": "%29", "<": "%3C", ">": "%3E"}


# ── View models ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Link:
    """One outbound action rendered as an anchor / markdown link."""

    label: str
    href: str | None
    primary: bool = False


@dataclass(frozen=True, slots=True)
class RepoCard:
    """Everything a template needs to render one repository."""

    name: str
    deployable: bool
    archived: bool
    description: str
    language: str
    topics: str
    homepage: str
    stars: int
    forks: int
    size_kb: int
    reference_url: str
    links: tuple[Link, ...]
    deploy_links: tuple[Link, ...]
    route_links: tuple[Link, ...]


# ── Link construction ───────────────────────────────────────────────────────


def is_web_url(url: str | None) -> bool:
    return url is not None and url.lower().startswith(("http://", "https://"))


def repository_links(repo: RepositoryRecord) -> tuple[Link, ...]:
    """Links every repository gets, deployable or not."""
    owner, name = repo.owner, repo.name
    links = [
        Link("GitHub", repo.html_url),
        Link("Code", f"{_EDITOR}/{owner}/{name}"),
        Link("Chat", f"{_CHAT}/{_REFERENCE}/{owner}/{name}"),
        Link("uithub", f"{_REFERENCE}/{owner}/{name}"),
    ]
    if repo.homepage is not None and is_web_url(repo.homepage):
        links.append(Link("Homepage", repo.homepage))
    return tuple(links)


def deployment_links(repo: RepositoryRecord) -> tuple[Link, ...]:
    """Deployment-console deep links; empty for repositories without a config."""
    config = repo.deploy_config
    if config is None:
        return ()
    owner, name = repo.owner, repo.name
    service = config.name or name
    to = f"{_DASH}/?to=/{ACCOUNT_PLACEHOLDER}"
    return (
        Link(
            "Deploy",
            f"{to}/workers-and-pages/create/deploy-to-workers&repository={repo.html_url}",
            primary=True,
        ),
        Link(
            "Configure",
            f"{to}/workers-and-pages/create/workers/provider/github/{owner}/{name}/configure",
        ),
        Link(
            "Config",
            f"{repo.html_url}/blob/{quote(repo.default_branch)}/{quote(config.source_file)}",
        ),
        Link("Deployments", f"{to}/workers/services/view/{quote(service)}/production/deployments"),
    )


def route_href(pattern: str) -> str | None:
    """Turn a route pattern such as ``*.example.com/api/*`` into a visitable URL.

    Returns None when nothing but wildcards is left of the host.
    """
    target = pattern.split("://", 1)[-1]
    host, _, path = target.partition("/")
    host = host.strip("*").strip(".")
    if not host:
        return None
    path = path.split("*", 1)[0]
    return f"https://{host}/{path}"


def route_links(repo: RepositoryRecord) -> tuple[Link, ...]:
    if repo.deploy_config is None:
        return ()
    return tuple(Link(pattern, route_href(pattern)) for pattern in repo.deploy_config.routes)


def build_card(repo: RepositoryRecord) -> RepoCard:
    return RepoCard(
        name=repo.name,
        deployable=repo.deploy_config is not None,
        archived=repo.archived,
        description=repo.description or PLACEHOLDER,
        language=repo.language or PLACEHOLDER,
        topics=", ".join(repo.topics) if repo.topics else PLACEHOLDER,
        homepage=repo.homepage if repo.homepage and is_web_url(repo.homepage) else PLACEHOLDER,
        stars=repo.stars,
        forks=repo.forks,
        size_kb=repo.size_kb,
        reference_url=f"{_REFERENCE}/{repo.owner}/{repo.name}",
        links=repository_links(repo),
        deploy_links=deployment_links(repo),
        route_links=route_links(repo),
    )


# ── Template filters ────────────────────────────────────────────────────────


def md_escape(text: object) -> str:
    """Backslash-escape markdown metacharacters in user-controlled text."""
    return _MD_SPECIAL_RE.sub(r"\\\1", str(text)).replace("\n", " ")


def md_url(url: object) -> str:
    """Make *url* safe to place inside a markdown ``(...)`` link target."""
    return "".join(_MD_URL_UNSAFE.get(ch, ch) for ch in str(url))


def format_timestamp(ts: datetime) -> str:
    return _as_utc(ts).strftime("%Y-%m-%d %H:%M:%S UTC")


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _create_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["md"] = md_escape
    env.filters["md_url"] = md_url
    return env


# ── Renderer ────────────────────────────────────────────────────────────────


class DashboardRenderer:
    """Renders a :class:`DashboardSnapshot` into both output formats."""

    def __init__(
        self, site_url: str = "https://flaredream.com", stale_after_seconds: int = 300
    ) -> None:
        self._site_url = site_url.rstrip("/")
        self._stale_after = stale_after_seconds
        self._env = _create_environment()

    def render(
        self, username: str, viewer: str | None, snapshot: DashboardSnapshot
    ) -> RenderedDashboard:
        context = self._context(username, viewer, snapshot)
        return RenderedDashboard(
            markup=self._env.get_template("dashboard.html").render(**context),
            plaintext=self._env.get_template("dashboard.md").render(**context),
        )

    def _context(
        self, username: str, viewer: str | None, snapshot: DashboardSnapshot
    ) -> dict[str, object]:
        generated_at = _as_utc(snapshot.generated_at)
        return {
            "username": username,
            "viewer": viewer,
            "repository_count": len(snapshot.repositories),
            "deployable": [build_card(r) for r in snapshot.deployable],
            "other": [build_card(r) for r in snapshot.other],
            "lists": snapshot.lists,
            "generated_at": format_timestamp(generated_at),
            "annotation": {
                "generatedAt": generated_at.isoformat(),
                "username": username,
                "staleAfterSeconds": self._stale_after,
            },
            "refresh_url": f"/{quote(username)}/refresh",
            "chat_url": f"{_CHAT}/{self._site_url}/{quote(username)}",
        }
