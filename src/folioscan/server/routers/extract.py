"""Extraction endpoints and SSE stream."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from folioscan.core import ConfigError

from ..events import stream_events
from ..state import broadcaster, get_session_manager
from ..tasks import ExtractionBusyError, SessionManager
from ..workspace import resolve_video_path

router = APIRouter(prefix="/api", tags=["extraction"])


class ExtractRequest(BaseModel):
    video: str = Field(..., min_length=1, description="Absolute path or a name under workspace/videos")
    sample_rate_hz: Optional[float] = None
    change_threshold: Optional[float] = None
    strict_passes: Optional[int] = None
    dup_hash: Optional[int] = None
    digits: Optional[bool] = None


@router.post("/extract")
def start_extraction(
    request: ExtractRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> Dict[str, Any]:
    """Start a new extraction; rejected while another one is running."""

    try:
        video_path = resolve_video_path(request.video)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        cfg = manager.config
        cfg = cfg.with_overrides("sampling", sample_rate_hz=request.sample_rate_hz)
        cfg = cfg.with_overrides("detection", change_threshold=request.change_threshold)
        cfg = cfg.with_overrides("refine", strict_passes=request.strict_passes)
        cfg = cfg.with_overrides("dedup", dup_hash=request.dup_hash)
        cfg = cfg.with_overrides("ocr", digits_enabled=request.digits)
    except ConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    try:
        return manager.start(video_path, cfg)
    except ExtractionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/cancel")
def cancel_extraction(manager: SessionManager = Depends(get_session_manager)) -> Dict[str, Any]:
    return {"cancelled": manager.cancel()}


@router.get("/session")
def session_snapshot(manager: SessionManager = Depends(get_session_manager)) -> Dict[str, Any]:
    return manager.snapshot()


@router.get("/pages/{number}")
def page_image(number: int, manager: SessionManager = Depends(get_session_manager)) -> Response:
    """Return page `number` (1-based) as PNG."""

    pages = manager.pages()
    if number < 1 or number > len(pages):
        raise HTTPException(status_code=404, detail=f"page {number} not found")
    return Response(content=pages[number - 1].image, media_type="image/png")


@router.get("/events")
async def events(request: Request) -> StreamingResponse:
    """SSE channel for progress and log lines."""

    return StreamingResponse(stream_events(request, broadcaster), media_type="text/event-stream")
