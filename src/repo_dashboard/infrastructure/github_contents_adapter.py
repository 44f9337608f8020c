"""GitHub REST API adapter — implements the ContentSource port."""

from __future__ import annotations

import base64
import binascii
import logging
from urllib.parse import quote

import httpx

from repo_dashboard.domain.exceptions import ContentFetchError

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"


def _segment(value: str) -> str:
    """Percent-encode one path segment, dot segments included."""
    if value in (".", ".."):
        return value.replace(".", "%2E")
    return quote(value, safe="")


class GitHubContentsAdapter:
    """Concrete ContentSource backed by the GitHub v3 contents API."""

    def __init__(self, client: httpx.AsyncClient, api_url: str = _GITHUB_API) -> None:
        self._client = client
        self._api_url = api_url.rstrip("/")

    async def fetch_file(
        self, owner: str, repo: str, path: str, token: str | None = None
    ) -> str | None:
        """GET /repos/{owner}/{repo}/contents/{path} → decoded text, or None on 404."""
        segments = [owner, repo, "contents", *path.split("/")]
        url = f"{self._api_url}/repos/" + "/".join(_segment(s) for s in segments)
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "repo-dashboard/1.0",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = await self._client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ContentFetchError(f"Network error fetching {url}: {exc}") from exc

        if resp.status_code == 404:
            return None

        if resp.status_code != 200:
            raise ContentFetchError(
                f"GitHub API returned HTTP {resp.status_code} for {owner}/{repo}/{path}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise ContentFetchError(f"Invalid JSON from contents API for {path}") from exc

        return _decode_content(data, path)


def _decode_content(data: object, path: str) -> str:
    """Decode the base64 ``content`` field of a contents API response."""
    if not isinstance(data, dict) or data.get("type", "file") != "file":
        raise ContentFetchError(f"{path} is not a regular file")

    encoded = data.get("content")
    if not isinstance(encoded, str):
        raise ContentFetchError(f"Contents API response for {path} has no content")

    if data.get("encoding", "base64") != "base64":
        return encoded

    try:
        # GitHub wraps the base64 payload at 60 columns.
        raw = base64.b64decode("".join(encoded.split()), validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ContentFetchError(f"Could not decode {path}: {exc}") from exc
