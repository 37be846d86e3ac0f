"""
3sConnect Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles collaborators, middleware, exception handlers
       and routers. Collaborators (identity provider, media storage) can be
       injected; otherwise they are built from settings.
Who:   uvicorn (`uvicorn threesconnect.main:app`) and the test suite, which
       calls create_app() with fakes.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌────────────┐ ┌──────┐ ┌──────────┐  │
    │  │  Req ID  │→│ Access log │→│ GZip │→│   CORS   │  │
    │  └──────────┘ └────────────┘ └──────┘ └──────────┘  │
    │                                                     │
    │  Routes (/api): posts, comments, users, follow,     │
    │                 notifications;  /health             │
    │                                                     │
    │  app.state: identity_provider, media_storage        │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ Auth→401/403 │ NotFound→404 │   │
    │  │ Upload/Identity→502 │ Internal/other→500     │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check (reported, not fatal), optional
              table creation for local development.
    Shutdown: close collaborator HTTP clients, dispose the database engine.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from threesconnect import __version__
from threesconnect.config import Settings, settings
from threesconnect.database import create_all, dispose_engine
from threesconnect.exceptions import (
    IdentityProviderError,
    InternalError,
    ThreesConnectError,
    UploadError,
    ValidationError,
)
from threesconnect.middleware.logging import RequestLoggingMiddleware
from threesconnect.middleware.request_id import RequestIDMiddleware, request_id_var
from threesconnect.routes import comments, follow, health, notifications, posts, users
from threesconnect.services.identity import ClerkIdentityProvider, IdentityProvider
from threesconnect.services.media import (
    CloudinaryMediaStorage,
    LocalMediaStorage,
    MediaStorage,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, to stdout.

    Format: 2024-01-15T12:00:00 [INFO] threesconnect.services.post_service: ...
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
# Collaborators
# ══════════════════════════════════════════════════════════════════════════

def build_identity_provider(config: Settings) -> IdentityProvider:
    return ClerkIdentityProvider(
        secret_key=config.clerk_secret_key,
        jwks_url=config.clerk_jwks_url,
        api_url=config.clerk_api_url,
        issuer=config.clerk_issuer,
        timeout=config.identity_timeout,
    )


def build_media_storage(config: Settings) -> MediaStorage:
    if config.media_backend == "local":
        return LocalMediaStorage(storage_root=config.storage_root, base_url=config.media_base_url)
    return CloudinaryMediaStorage(
        cloud_name=config.cloudinary_cloud_name,
        api_key=config.cloudinary_api_key,
        api_secret=config.cloudinary_api_secret,
        transformation=config.cloudinary_transformation,
        timeout=config.media_timeout,
    )


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("3sConnect Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Reads keep working; affected mutations fail with 502 per request
        logger.error("Configuration error: %s", str(e))

    if settings.db_auto_create:
        await create_all()
        logger.info("Database tables created from model metadata")

    logger.info(
        "Media backend: %s | identity provider: %s",
        type(app.state.media_storage).__name__,
        type(app.state.identity_provider).__name__,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("3sConnect Backend shutting down...")
    await app.state.identity_provider.aclose()
    await app.state.media_storage.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, rid: str, details: Optional[dict] = None) -> dict:
    body = {"error": error, "message": message, "request_id": rid}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to JSON error responses.

    Handler hierarchy:
        ValidationError          → 400 (details name the offending field)
        RequestValidationError   → 400 (malformed body / path parameter)
        UploadError              → 502
        IdentityProviderError    → 502
        InternalError            → 500 (generic message, context logged)
        ThreesConnectError       → its own status (401, 403, 404)
        Exception (fallback)     → 500 internal_error

    Response bodies never contain stack traces or the exception context
    (validation details carry only the field name).
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s | Context: %s", rid, exc.message, exc.context)
        details = {"field": exc.field} if exc.field else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, rid, details=details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
            for err in exc.errors()
        ]
        logger.warning("[%s] Invalid request: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "validation_error", "The request is invalid", rid, details={"errors": errors}
            ),
        )

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        rid = request_id_var.get("")
        logger.error("[%s] Upload error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, rid),
        )

    @app.exception_handler(IdentityProviderError)
    async def handle_identity_error(request: Request, exc: IdentityProviderError):
        rid = request_id_var.get("")
        logger.error("[%s] Identity provider error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, rid),
        )

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        rid = request_id_var.get("")
        logger.error("[%s] Internal error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, rid),
        )

    @app.exception_handler(ThreesConnectError)
    async def handle_app_error(request: Request, exc: ThreesConnectError):
        rid = request_id_var.get("")
        logger.info("[%s] %s: %s", rid, exc.error_code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.error_code, exc.message, rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_error",
                "An unexpected error occurred. Please try again later.",
                rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    identity_provider: Optional[IdentityProvider] = None,
    media_storage: Optional[MediaStorage] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        identity_provider: verifies bearer tokens and serves profiles;
            defaults to Clerk configured from settings
        media_storage: stores post images; defaults to the backend named
            by settings.media_backend
    """
    app = FastAPI(
        title="3sConnect API",
        description=(
            "Social feed backend: posts with images, likes, comments, follows "
            "and notifications for the 3sConnect mobile app."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.identity_provider = identity_provider or build_identity_provider(settings)
    app.state.media_storage = media_storage or build_media_storage(settings)

    if isinstance(app.state.media_storage, LocalMediaStorage):
        storage_root = Path(settings.storage_root)
        storage_root.mkdir(parents=True, exist_ok=True)
        app.mount("/media", StaticFiles(directory=str(storage_root)), name="media")

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
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

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(posts.router)
    app.include_router(comments.router)
    app.include_router(users.router)
    app.include_router(follow.router)
    app.include_router(notifications.router)
    app.include_router(health.router)

    return app


# uvicorn threesconnect.main:app
app = create_app()
