"""Domain exception hierarchy.

Exceptions that can escape a use case map to a specific HTTP status code at
the interface layer.  Probe and parse errors are internal to config detection
and never reach the caller.
"""

from __future__ import annotations


class DashboardError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidUsernameError(DashboardError):
    """The supplied username is not a valid GitHub login."""


# ── Upstream errors ─────────────────────────────────────────────────────────


class UpstreamFetchError(DashboardError):
    """The aggregation service failed or returned an unusable payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ContentFetchError(DashboardError):
    """The content API failed for a reason other than "not found"."""


# ── Config detection ────────────────────────────────────────────────────────


class ConfigParseError(DashboardError):
    """A candidate config file was found but is malformed for its format."""


# ── Cache errors ────────────────────────────────────────────────────────────


class CacheWriteError(DashboardError):
    """The cache store could not persist a batch of entries."""
