"""FastAPI application factory and global middleware registration."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from server.core.config import CORS_ALLOW_CREDENTIALS, CORS_ALLOW_ORIGINS

from .routes import download_router, estimate_router

# Basic logging config (stdout) if not already configured by the host.
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

logger = logging.getLogger("estimator.api")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Scope Estimator API",
        version="0.1.0",
        description="Turns scope documents into project estimates and exports them.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_credentials=CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(estimate_router)
    app.include_router(download_router)

    @app.middleware("http")
    async def error_logging_middleware(request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception:
            logger.exception("Unhandled exception during request")
            raise

    @app.get("/health", tags=["system"])
    async def healthcheck() -> Dict[str, str]:
        """Simple healthcheck endpoint for orchestration probes."""

        return {"status": "ok"}

    return app


app = create_app()
