"""API routes — thin controllers that delegate to the read path and the use case."""

from __future__ import annotations

import html

from fastapi import APIRouter, Depends, Request
from fastapi.responses import (
    HTMLResponse,
    JSONResponse,
    PlainTextResponse,
    RedirectResponse,
    Response,
)

from repo_dashboard.domain.entities import OutputFormat, Viewer
from repo_dashboard.interface.dependencies import get_reader, get_refresh_use_case, get_viewer
from repo_dashboard.interface.schemas import RefreshResponse
from repo_dashboard.services.read_dashboard import DashboardReader
from repo_dashboard.services.refresh_dashboard import RefreshDashboardUseCase

router = APIRouter()

_SUFFIXES: dict[str, OutputFormat] = {
    ".html": OutputFormat.MARKUP,
    ".md": OutputFormat.PLAINTEXT,
}

_MARKDOWN_TYPE = "text/markdown; charset=utf-8"


def negotiate(page: str, accept: str) -> tuple[str, OutputFormat]:
    """Split ``alice.md`` into ``("alice", PLAINTEXT)``; fall back to the Accept header."""
    for suffix, fmt in _SUFFIXES.items():
        if page.endswith(suffix):
            return page[: -len(suffix)], fmt
    if "text/markdown" in accept:
        return page, OutputFormat.PLAINTEXT
    return page, OutputFormat.MARKUP


def _loading_page(username: str) -> str:
    name = html.escape(username)
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Loading {name}'s Dashboard</title>
    <meta http-equiv="refresh" content="0; url=/{name}/refresh">
</head>
<body>
    <p>Generating dashboard... <a href="/{name}/refresh">Click here if not redirected</a></p>
</body>
</html>
"""


@router.get(
    "/{username}/refresh",
    response_model=None,
    responses={
        422: {"description": "Invalid username"},
        502: {"description": "Aggregation service failure"},
        503: {"description": "Cache write failure"},
    },
)
async def refresh(
    username: str,
    format: str | None = None,
    viewer: Viewer | None = Depends(get_viewer),
    use_case: RefreshDashboardUseCase = Depends(get_refresh_use_case),
) -> Response:
    """Regenerate a user's dashboard, then send the browser back to it."""
    result = await use_case.execute(username, viewer)
    if format == "json":
        body = RefreshResponse.from_result(result)
        return JSONResponse(body.model_dump(mode="json"))
    return RedirectResponse(f"/{result.username}", status_code=303)


@router.get(
    "/{page}",
    response_model=None,
    responses={422: {"description": "Invalid username"}},
)
async def dashboard(
    page: str,
    request: Request,
    viewer: Viewer | None = Depends(get_viewer),
    reader: DashboardReader = Depends(get_reader),
) -> Response:
    """Serve a cached dashboard as HTML or markdown."""
    username, fmt = negotiate(page, request.headers.get("accept", ""))
    content = reader.read(username, viewer, fmt)

    if content is None:
        if fmt is OutputFormat.PLAINTEXT:
            return PlainTextResponse(
                f"# Dashboard not generated yet\n\nVisit /{username}/refresh to build it.\n",
                status_code=404,
                media_type=_MARKDOWN_TYPE,
            )
        return HTMLResponse(_loading_page(username))

    if fmt is OutputFormat.PLAINTEXT:
        return PlainTextResponse(content, media_type=_MARKDOWN_TYPE)
    return HTMLResponse(content)
