"""
A+ Marketplace Backend — FastAPI Application Factory
======================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (uvicorn aplus.main:app) and the route tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                         FastAPI App                          │
    │                                                              │
    │  Middleware: RateLimit → RequestID → Logging → GZip → CORS   │
    │                                                              │
    │  Routers: users · notes · purchase · sales · withdrawals ·   │
    │           notifications · profits · courses · announcements  │
    │           · customer-ratings · files · health                │
    │                                                              │
    │  Exception Handlers:                                         │
    │    AplusError → status_code / error_type of the subclass     │
    │    RateLimit / CircuitOpen → + Retry-After                   │
    │    DatabaseError, SQLAlchemyError → generic 500              │
    │    Exception → generic 500, traceback logged                 │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration check → storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import pydantic
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from aplus import __version__
from aplus.config import settings
from aplus.database import dispose_engine
from aplus.exceptions import (
    AplusError,
    CircuitBreakerOpenError,
    DatabaseError,
    FileStorageError,
    RateLimitExceededError,
)
from aplus.messages import translate
from aplus.middleware.logging import RequestLoggingMiddleware
from aplus.middleware.rate_limit import RateLimitMiddleware
from aplus.middleware.request_id import RequestIDMiddleware, request_id_var
from aplus.routes import (
    announcements,
    courses,
    customer_ratings,
    files,
    health,
    notes,
    notifications,
    profits,
    purchases,
    sales,
    users,
    withdrawals,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s to stdout.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("A+ Marketplace Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("A+ Marketplace Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    exc: AplusError,
    rid: str,
    message: Optional[str] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_type,
            "message": message or exc.message,
            "details": exc.details,
            "request_id": rid,
        },
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the error envelope
    `{"error", "message", "details", "request_id"}`.

    Internal details (SQL, paths, tracebacks) are logged, never returned.
    """

    @app.exception_handler(AplusError)
    async def handle_aplus_error(request: Request, exc: AplusError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s (%s): %s", rid, type(exc).__name__, exc.code, exc.message)
        return _error_response(exc, rid)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            exc, request_id_var.get(""), headers={"Retry-After": str(exc.retry_after)}
        )

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        rid = request_id_var.get("")
        logger.warning("[%s] Payment gateway circuit open: %s", rid, exc.message)
        return _error_response(exc, rid, headers={"Retry-After": str(exc.recovery_time)})

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(exc, rid, message=translate("error.database"))

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return _error_response(exc, rid)

    @app.exception_handler(SQLAlchemyError)
    async def handle_sqlalchemy_error(request: Request, exc: SQLAlchemyError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled database error: %s", rid, str(exc), exc_info=True)
        return _error_response(DatabaseError(), rid)

    @app.exception_handler(pydantic.ValidationError)
    async def handle_model_validation(request: Request, exc: pydantic.ValidationError):
        # Raised when routes assemble schemas from form fields
        rid = request_id_var.get("")
        errors = exc.errors(include_url=False, include_context=False)
        field = ".".join(str(p) for p in errors[0]["loc"]) if errors else None
        logger.info("[%s] Invalid form data: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": errors[0]["msg"] if errors else translate("error.validation"),
                "details": {"code": "error.validation", "field": field},
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": translate("error.unexpected"),
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="A+ Marketplace API",
        description=(
            "Marketplace for educational notes and courses: catalog, purchases, "
            "seller payouts, notifications and administration."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(notes.router)
    app.include_router(purchases.router)
    app.include_router(sales.router)
    app.include_router(withdrawals.router)
    app.include_router(notifications.router)
    app.include_router(profits.router)
    app.include_router(courses.router)
    app.include_router(announcements.router)
    app.include_router(customer_ratings.router)
    app.include_router(files.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
