"""
PlantLog Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       uvicorn serves the module-level `app` (uvicorn app.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                         FastAPI App                          │
    │                                                              │
    │  Middleware:   Request ID → Access Log → GZip → CORS         │
    │                                                              │
    │  Routes:       /api/locations     /api/researchers[/me]      │
    │                /api/samples       /api/dashboard/stats       │
    │                /api/reports/analytics          /health       │
    │                                                              │
    │  Exception Handlers (all render the same envelope):          │
    │     Validation → 400   Auth → 401/403   NotFound → 404       │
    │     Database → 500     Geocoding/Identity → 503              │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check (logged, never fatal)
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    PlantLogError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import analytics, health, locations, researchers, samples

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2024-06-01T08:00:00 [INFO] app.services.sample_service: Created 3 sample(s) ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that log every statement / connection at INFO
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
    logger.info("PlantLog Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: /health keeps answering and affected endpoints return 401/503
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("PlantLog Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_envelope(
    message: str,
    code: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "error": message,
        "code": code,
        "details": details or None,
        "request_id": request_id_var.get(""),
    }


def _validation_summary(exc: RequestValidationError) -> Dict[str, Any]:
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    if errors:
        first = errors[0]
        location = ".".join(part for part in first["loc"] if part not in ("body", "query", "path"))
        message = f"{location}: {first['msg']}" if location else first["msg"]
    else:
        message = "Invalid request"
    return {"message": message, "errors": errors}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes; every response uses error_envelope().

        ValidationError, RequestValidationError  → 400
        AuthenticationError                      → 401
        AuthorizationError                       → 403
        NotFoundError, unknown route             → 404
        DatabaseError                            → 500 (store message kept)
        ExternalServiceError                     → 503
        PlantLogError (base), Exception          → 500
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=error_envelope(exc.message, exc.code, exc.context))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        summary = _validation_summary(exc)
        logger.warning("[%s] Invalid request: %s", request_id_var.get(""), summary["message"])
        return JSONResponse(
            status_code=400,
            content=error_envelope(summary["message"], ValidationError.code, {"errors": summary["errors"]}),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=error_envelope(exc.message, exc.code, exc.context),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning("[%s] Forbidden: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=403, content=error_envelope(exc.message, exc.code, exc.context))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=error_envelope(exc.message, exc.code, exc.context))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=error_envelope(exc.message, exc.code))

    @app.exception_handler(ExternalServiceError)
    async def handle_external_service_error(request: Request, exc: ExternalServiceError):
        logger.error("[%s] %s service error: %s", request_id_var.get(""), exc.service, exc.message)
        return JSONResponse(status_code=503, content=error_envelope(exc.message, exc.code, exc.context))

    @app.exception_handler(PlantLogError)
    async def handle_plantlog_error(request: Request, exc: PlantLogError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=500, content=error_envelope(exc.message, exc.code))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = "not_found" if exc.status_code == 404 else "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(str(exc.detail), code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Stack trace goes to the log only, never into the response
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_envelope("An unexpected error occurred. Please try again.", "server_error"),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="PlantLog API",
        description=(
            "Plant sample record keeping: samples, sampling locations, researchers, "
            "environmental readings, dashboard statistics and report analytics."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition: RequestID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(locations.router)
    app.include_router(researchers.router)
    app.include_router(samples.router)
    app.include_router(analytics.router)
    app.include_router(health.router)

    return app


app = create_app()
