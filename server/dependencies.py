"""FastAPI dependencies common across routes."""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, status

from .core.llm import ClaudeEstimator


@lru_cache(maxsize=1)
def _estimator() -> ClaudeEstimator:
    return ClaudeEstimator()


def get_estimator() -> ClaudeEstimator:
    try:
        return _estimator()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
