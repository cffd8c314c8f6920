"""
Page routes for the weed sprayer web interface.

- / serves the single status page (live overlay, start/stop, settings)
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse, HTMLResponse

router = APIRouter()
index_file = Path(__file__).resolve().parent.parent / "static" / "index.html"


@router.get("/", response_class=HTMLResponse)
def status_page():
    """Status page."""
    if index_file.exists():
        return FileResponse(index_file)
    return HTMLResponse(
        content="<h1>Status page missing</h1><p>Expected src/web/static/index.html</p>",
        status_code=503,
    )
