"""Export endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from folioscan.core import AssemblyError, ConfigError

from ..state import get_session_manager
from ..tasks import SessionManager

router = APIRouter(prefix="/api", tags=["export"])


class ExportRequest(BaseModel):
    ocr: bool = True
    lang: Optional[str] = None
    filename: str = "book_ocr.pdf"


@router.post("/export")
def export_pdf(
    request: ExportRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> Response:
    """Build a searchable PDF from the current session's pages."""

    if not manager.pages():
        raise HTTPException(status_code=409, detail="no pages to export")
    try:
        result = manager.export(ocr=request.ocr, lang=request.lang)
    except ConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except AssemblyError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    headers = {
        "Content-Disposition": f'attachment; filename="{request.filename}"',
        "X-Ocr-Failures": ",".join(str(n) for n in result.ocr_failures),
    }
    return Response(content=result.pdf, media_type="application/pdf", headers=headers)
