"""FastAPI application initialization for ViolationLedger."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from violation_ledger.config import get_settings
from violation_ledger.core.errors import (
    BackendUnavailableError,
    LedgerError,
    NotAuthenticatedError,
    NotFoundError,
    ValidationError,
)
from violation_ledger.database import close_db, init_db
from violation_ledger.routers import complaints, dashboard, hosts, vehicles, violations, visitors

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    NotAuthenticatedError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    BackendUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}, storage backend: {settings.storage_backend}")
    if settings.storage_backend == "sql" and settings.create_tables_on_startup:
        await init_db()
    yield
    logger.info("Shutting down application...")
    if settings.storage_backend == "sql":
        await close_db()


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Parking and visitor violation lifecycle tracking for patrol teams",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        return {
            "status": "healthy",
            "app_name": settings.app_name,
            "version": settings.app_version,
        }

    @app.get("/api", tags=["Root"])
    async def api_root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/api/docs",
        }

    # Register routers
    app.include_router(violations.router)
    app.include_router(complaints.router)
    app.include_router(visitors.router)
    app.include_router(hosts.router)
    app.include_router(vehicles.router)
    app.include_router(dashboard.router)

    return app


app = create_app()
