"""
Ponto Urbano Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       with its own ServiceContainer on app.state.
Who:   uvicorn (`uvicorn pontourbano.main:app`), `python -m pontourbano`, tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────┐ ┌──────┐ ┌─────────┐ ┌────────┐ ┌───────────┐  │
    │  │ CORS │→│ GZip │→│ Logging │→│ Req ID │→│ Session   │  │
    │  └──────┘ └──────┘ └─────────┘ └────────┘ └───────────┘  │
    │                                                          │
    │  Routes:                                                 │
    │  ┌───────────────┐ ┌───────────────┐ ┌────────────────┐  │
    │  │ auth          │ │ problemas     │ │ perfil/usuario │  │
    │  └───────────────┘ └───────────────┘ └────────────────┘  │
    │  ┌───────────────┐ ┌───────────────┐ ┌────────────────┐  │
    │  │ /uploads      │ │ /health       │ │ frontend (opt) │  │
    │  └───────────────┘ └───────────────┘ └────────────────┘  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Auth→401 │ NotFound→404 │ *→500   │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Create tables that don't exist yet
    4. Log startup complete

    Shutdown:
    1. Close the image host HTTP client
    2. Dispose database engine (close all connections)
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
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from pontourbano import __version__
from pontourbano.config import Settings
from pontourbano.container import ServiceContainer
from pontourbano.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    PontoUrbanoError,
    UploadError,
    ValidationError,
)
from pontourbano.middleware.logging import RequestLoggingMiddleware
from pontourbano.middleware.request_id import RequestIDMiddleware, request_id_var
from pontourbano.routes import auth, health, reports, uploads, users

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Erro interno no servidor"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(settings: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    When:   Called once during app startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # platform log collectors read stdout
        ],
        force=True,
    )

    # Third-party libraries that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    Code before yield runs on startup, code after yield on shutdown.
    """
    container: ServiceContainer = app.state.container
    settings = container.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings)
    logger.info("=" * 60)
    logger.info("Ponto Urbano Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        # Don't exit: health checks still answer and show what is wrong

    await container.startup()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Ponto Urbano Backend shutting down...")
    await container.shutdown()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def _error_response(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "message": message,
            "request_id": _request_id(request),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError         → 400 (also FastAPI's RequestValidationError)
        AuthError               → 401, or 400 for rejected credentials
        ConflictError           → 400
        NotFoundError           → 404
        UploadError             → 400 bad file / 500 storage failure
        PontoUrbanoError (base) → its status code (InternalError → 500)
        HTTPException           → its status ("Rota não encontrada" for 404)
        Exception (fallback)    → 500 with a generic message

    Security: handlers NEVER expose stack traces, SQL or file paths. The
    exception context is logged server-side only.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s | %s", _request_id(request), exc.message, exc.context)
        return _error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Malformed path parameters or bodies FastAPI itself rejected (422 → 400)."""
        logger.warning("[%s] Request validation failed: %s", _request_id(request), exc.errors())
        return _error_response(request, 400, ValidationError.error_code, "Dados inválidos")

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        logger.info("[%s] Auth rejected: %s", _request_id(request), exc.message)
        return _error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.info("[%s] Conflict: %s", _request_id(request), exc.message)
        return _error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(UploadError)
    async def handle_upload_error(request: Request, exc: UploadError):
        if exc.status_code >= 500:
            logger.error("[%s] Upload error: %s | Context: %s", _request_id(request), exc.message, exc.context)
        else:
            logger.warning("[%s] Upload rejected: %s", _request_id(request), exc.message)
        return _error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(PontoUrbanoError)
    async def handle_app_error(request: Request, exc: PontoUrbanoError):
        """InternalError and anything else from the hierarchy without its own handler."""
        logger.error("[%s] %s: %s | Context: %s", _request_id(request), type(exc).__name__, exc.message, exc.context)
        return _error_response(request, exc.status_code, exc.error_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_response(request, 404, "not_found", "Rota não encontrada")
        return _error_response(request, exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        The response carries a generic message and the request id; the stack
        trace goes to the log only.
        """
        logger.error("[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True)
        return _error_response(request, 500, "internal_server_error", GENERIC_ERROR_MESSAGE)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:  Configuration; read from the environment when omitted
        container: Prebuilt ServiceContainer (tests); built from settings when omitted

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    if container is None:
        container = ServiceContainer(settings or Settings())
    settings = container.settings

    app = FastAPI(
        title="Ponto Urbano API",
        description=(
            "Municipal issue reporting: citizens register, log in and pin "
            "problems (with an optional photo) on the city map."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.container = container

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition: the last one added
    # is the outermost. Execution order: CORS → GZip → Logging → RequestID → Session

    # Signed cookie holding only the opaque session id; the session itself
    # lives in the SessionStore.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age,
        same_site="lax",
        https_only=settings.session_https_only,
    )

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    # Don't compress small responses (overhead > savings)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # the session cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(reports.router)
    app.include_router(users.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    # Mounted last so every API route takes precedence over static files
    if settings.frontend_dir:
        frontend = Path(settings.frontend_dir)
        if frontend.is_dir():
            app.mount("/", StaticFiles(directory=str(frontend), html=True), name="frontend")
        else:
            logger.warning("FRONTEND_DIR %s is not a directory; not serving it", frontend)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `pontourbano.main:app` to be importable
app = create_app()
