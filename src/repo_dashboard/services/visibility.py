"""Visibility resolution — who gets to see which tier."""

from __future__ import annotations

from repo_dashboard.domain.entities import Tier, Viewer, VisibilityDecision
from repo_dashboard.domain.value_objects import Username


def resolve_visibility(viewer: Viewer | None, username: Username) -> VisibilityDecision:
    """Decide the tier for *viewer* looking at *username*'s dashboard.

    The tier is private only when the viewer is the target user; only then is
    the viewer's credential handed to downstream fetches.
    """
    if viewer is None or not username.matches(viewer.login):
        return VisibilityDecision(tier=Tier.PUBLIC, is_owner=False)
    return VisibilityDecision(tier=Tier.PRIVATE, is_owner=True, credential=viewer.token or None)
