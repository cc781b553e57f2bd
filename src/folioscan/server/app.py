"""FastAPI application factory."""

from __future__ import annotations

import asyncio

from fastapi import FastAPI

from .routers.export import router as export_router
from .routers.extract import router as extract_router
from .state import broadcaster
from .workspace import ensure_workspace_layout


def create_app() -> FastAPI:
    """Create the FastAPI app instance."""

    ensure_workspace_layout()
    app = FastAPI(title="folioscan server", version="0.1.0")
    app.include_router(extract_router)
    app.include_router(export_router)

    @app.on_event("startup")
    async def _capture_loop() -> None:
        broadcaster.set_loop(asyncio.get_running_loop())

    return app


app = create_app()
