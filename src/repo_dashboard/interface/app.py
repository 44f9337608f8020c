"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from repo_dashboard.interface.dependencies import shutdown, startup
from repo_dashboard.interface.error_handlers import register_error_handlers
from repo_dashboard.interface.routes import router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup / shutdown of shared resources."""
    await startup()
    yield
    await shutdown()


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="Repository Dashboard",
        version="1.0.0",
        description=(
            "Serves a per-user dashboard of GitHub repositories as HTML or "
            "markdown from a cache, and regenerates it on demand."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    # ── Health check (simple liveness probe) ────────────────────────────
    # Registered before the router so "/{page}" does not shadow it.

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(router)
    return app
