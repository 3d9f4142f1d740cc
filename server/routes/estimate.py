"""Estimate generation and feedback-driven regeneration endpoints."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import ACCEPTED_UPLOAD_TYPES, MAX_UPLOAD_BYTES
from ..core.ingest import IngestError, extract_pdf_text
from ..core.llm import ClaudeEstimator, EstimationError
from ..dependencies import get_estimator


LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/estimate", tags=["estimate"])

PREVIOUS_SCOPE_PLACEHOLDER = "Based on previous scope"


class FeedbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scope_text: Optional[str] = Field(default=None, alias="scopeText")
    feedback: Optional[str] = None


async def _generate(estimator: ClaudeEstimator, scope_text: str, feedback: Optional[str]) -> str:
    try:
        return await run_in_threadpool(estimator.generate_estimate, scope_text, feedback)
    except EstimationError as exc:
        LOGGER.error("Estimate generation failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


@router.post("/upload", response_class=PlainTextResponse)
async def upload_scope(
    file: UploadFile = File(...),
    estimator: ClaudeEstimator = Depends(get_estimator),
) -> str:
    if file.content_type and file.content_type not in ACCEPTED_UPLOAD_TYPES:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported file type {file.content_type}; upload a PDF",
        )

    contents = await file.read()
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"{file.filename} exceeds the {MAX_UPLOAD_BYTES} byte upload limit",
        )

    try:
        scope_text = await run_in_threadpool(extract_pdf_text, contents)
    except IngestError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    LOGGER.info("Generating estimate for %s", file.filename)
    return await _generate(estimator, scope_text, None)


@router.post("/feedback", response_class=PlainTextResponse)
async def regenerate_with_feedback(
    payload: FeedbackRequest,
    estimator: ClaudeEstimator = Depends(get_estimator),
) -> str:
    previous = payload.scope_text if payload.scope_text and payload.scope_text.strip() else PREVIOUS_SCOPE_PLACEHOLDER
    return await _generate(estimator, previous, payload.feedback)
