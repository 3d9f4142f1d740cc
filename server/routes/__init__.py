"""API routers for the estimation service."""

from .download import router as download_router
from .estimate import router as estimate_router

__all__ = [
    "download_router",
    "estimate_router",
]
