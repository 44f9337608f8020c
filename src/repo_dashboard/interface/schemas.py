"""Pydantic response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from repo_dashboard.domain.entities import RefreshResult


class RefreshResponse(BaseModel):
    """Successful response from ``GET /{username}/refresh?format=json``."""

    status: str = "ok"
    username: str
    tier: str
    generated_at: datetime
    repository_count: int
    deployable_count: int
    keys: list[str]

    @classmethod
    def from_result(cls, result: RefreshResult) -> RefreshResponse:
        return cls(
            username=result.username,
            tier=result.tier.value,
            generated_at=result.generated_at,
            repository_count=result.repository_count,
            deployable_count=result.deployable_count,
            keys=list(result.keys),
        )


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
