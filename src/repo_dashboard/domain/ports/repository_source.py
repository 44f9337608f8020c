"""Port: repository source — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_dashboard.domain.entities import RepositoryListing


class RepositorySource(Protocol):
    """Abstract contract for the upstream aggregation service."""

    async def fetch_repositories(
        self, username: str, token: str | None = None
    ) -> RepositoryListing:
        """Return every repository the upstream reports for *username*.

        With a *token* the upstream includes private repositories.  No
        filtering by privacy happens here.
        """
        ...
