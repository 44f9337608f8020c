"""Port: file content source — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol


class ContentSource(Protocol):
    """Abstract contract for fetching a single file from a repository."""

    async def fetch_file(
        self, owner: str, repo: str, path: str, token: str | None = None
    ) -> str | None:
        """Return the decoded file text, or ``None`` when the file does not exist.

        Any other failure raises :class:`ContentFetchError`.
        """
        ...
