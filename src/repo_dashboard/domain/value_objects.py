"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from repo_dashboard.domain.entities import OutputFormat, Tier
from repo_dashboard.domain.exceptions import InvalidUsernameError

_LOGIN_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9]|-(?=[A-Za-z0-9])){0,38}$")


@dataclass(frozen=True, slots=True)
class Username:
    """Validated GitHub login.

    Logins are case-insensitive on GitHub, so :attr:`key` is the lower-cased
    form used for cache addressing while :attr:`display` keeps the caller's
    spelling for rendering.
    """

    display: str

    @classmethod
    def from_string(cls, raw: str) -> Username:
        """Parse and validate a raw login string."""
        login = raw.strip()
        if not _LOGIN_RE.match(login):
            raise InvalidUsernameError(
                f"Invalid username: '{raw}'. "
                "Expected 1-39 alphanumeric characters or single hyphens."
            )
        return cls(display=login)

    @property
    def key(self) -> str:
        return self.display.lower()

    def matches(self, login: str | None) -> bool:
        return login is not None and login.lower() == self.key


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Address of one cache entry: ``dashboard:{username}:{tier}:{format}``.

    The tier is always part of the key, so a public lookup can never alias a
    private entry.
    """

    username: str
    tier: Tier
    format: OutputFormat

    def __str__(self) -> str:
        return f"dashboard:{self.username.lower()}:{self.tier.value}:{self.format.value}"

    @classmethod
    def pair(cls, username: str, tier: Tier) -> tuple[CacheKey, CacheKey]:
        """Both format keys for one tier."""
        return (
            cls(username, tier, OutputFormat.MARKUP),
            cls(username, tier, OutputFormat.PLAINTEXT),
        )
