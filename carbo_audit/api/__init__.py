"""
FastAPI application factory and API package.

Run with:
    uvicorn carbo_audit.api:app --reload --port 8000

Or via main.py:
    python -m carbo_audit --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from carbo_audit.config import get_settings
from carbo_audit.api.middleware import EmptyPreflightCORSMiddleware, validation_error_handler
from carbo_audit.api.routes import ALLOWED_HEADERS, audit_router, health_router
from carbo_audit.orchestration.audit_pipeline import get_report_service

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Carbo Audit API",
        description="JCM AWD methodology compliance audits for PDD and calculation documents",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS for the browser upload client
    application.add_middleware(
        EmptyPreflightCORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=ALLOWED_HEADERS,
    )
    application.add_exception_handler(RequestValidationError, validation_error_handler)

    application.include_router(health_router, tags=["Health"])
    application.include_router(audit_router, prefix="/api/audit", tags=["Audit"])

    @application.on_event("startup")
    async def startup():
        logger.info(f"Starting {settings.app_name} API")

    @application.on_event("shutdown")
    async def shutdown():
        get_report_service().repository.close()

    return application


# Module-level instance for `uvicorn carbo_audit.api:app`
app = create_app()
