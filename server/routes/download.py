"""Export endpoints returning the estimate as PDF or DOCX."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import EXPORT_FILENAME_STEM
from ..core.markdown_to_docx import markdown_to_docx_bytes
from ..core.markdown_to_pdf import markdown_to_pdf_bytes


LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/download", tags=["download"])

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class ExportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scope_text: str = Field(default="", alias="scopeText")


async def _export(payload: ExportRequest, convert: Callable[[str], bytes], extension: str, media_type: str) -> Response:
    if not payload.scope_text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="scopeText is required")

    data = await run_in_threadpool(convert, payload.scope_text)
    filename = f"{EXPORT_FILENAME_STEM}.{extension}"
    LOGGER.info("Exported %s (%d bytes)", filename, len(data))
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/pdf")
async def download_pdf(payload: ExportRequest) -> Response:
    return await _export(payload, markdown_to_pdf_bytes, "pdf", PDF_MEDIA_TYPE)


@router.post("/docx")
async def download_docx(payload: ExportRequest) -> Response:
    return await _export(payload, markdown_to_docx_bytes, "docx", DOCX_MEDIA_TYPE)
