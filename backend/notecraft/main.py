"""
NoteCraft Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn notecraft.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │   POST /api/ingest   POST /api/render   /api/files/*     │
    │   /api/notes         GET /health                         │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400  Unauthorized→401  NotFound→404         │
    │   Extraction→502  CircuitOpen→503  Upload/Storage→500    │
    │   Database→500  AggregateIngestion→500                   │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notecraft import __version__
from notecraft.config import settings
from notecraft.database import dispose_engine
from notecraft.exceptions import (
    AggregateIngestionFailure,
    CircuitBreakerOpenError,
    DatabaseError,
    ExtractionError,
    FileStorageError,
    NotFoundError,
    UnauthorizedError,
    UploadError,
    ValidationError,
)
from notecraft.middleware.logging import RequestLoggingMiddleware
from notecraft.middleware.request_id import RequestIDMiddleware, request_id_var
from notecraft.routes import files, health, ingest, notes, render

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger from settings.log_level.

    Format: 2024-01-15T12:00:00 [INFO] notecraft.services.ingestion: message
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("NoteCraft Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Extraction is optional: binary files fall back to upload-only
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("NoteCraft Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map NoteCraftError subclasses to HTTP responses.

    Handler hierarchy:
        ValidationError           → 400
        UnauthorizedError         → 401
        NotFoundError             → 404
        CircuitBreakerOpenError   → 503 with Retry-After
        ExtractionError           → 502 (401 when kind is UNAUTHORIZED)
        UploadError               → 500 (401 when kind is UNAUTHORIZED)
        FileStorageError          → 500
        DatabaseError             → 500, generic message
        AggregateIngestionFailure → 500
        Exception                 → 500, generic message

    Responses never include stack traces, paths or SQL; `context` is logged
    and only returned for validation errors.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        return _error_response(401, "unauthorized", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc.message,
            details={"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(ExtractionError)
    async def handle_extraction_error(request: Request, exc: ExtractionError):
        if exc.is_unauthorized:
            return _error_response(401, "unauthorized", exc.message)
        logger.error(
            "[%s] Extraction error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(502, "extraction_error", exc.message)

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        if exc.is_unauthorized:
            return _error_response(401, "unauthorized", exc.message)
        logger.error("[%s] Upload error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "upload_error", exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(AggregateIngestionFailure)
    async def handle_ingestion_failure(request: Request, exc: AggregateIngestionFailure):
        logger.error("[%s] Ingestion failure | Context: %s", request_id_var.get(""), exc.context)
        return _error_response(500, "ingestion_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="NoteCraft API",
        description=(
            "Assemble notes from typed text and uploaded files. Text files are "
            "merged directly; documents and images are extracted with Google "
            "Gemini, or stored and linked when extraction is not possible."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Registered innermost first; the last one added wraps all others
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(ingest.router)
    app.include_router(render.router)
    app.include_router(files.router)
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


app = create_app()
