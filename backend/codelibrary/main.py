"""
Code Library Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the collaborators (KV store, snippet repository,
       identity provider), keeps them on app.state, then registers middleware,
       exception handlers and routers under settings.api_prefix.
Who:   uvicorn imports `codelibrary.main:app`; tests call create_app() with fakes.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐             │
    │  │ Req ID   │→│ Logging  │→│ GZip │→│ CORS │             │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘             │
    │                                                          │
    │  Routes ({api_prefix}/...):                              │
    │  /health   /auth/signup   /snippets   /snippets/{id}     │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation/Upstream→400 │ Auth→401 │ NotFound→404 │ 500 │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, report missing identity settings, create the
              kv_store table when KV_BACKEND=sql and DB_CREATE_SCHEMA=true.
    Shutdown: close the KV store (engine disposal) and the provider client.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from codelibrary import __version__
from codelibrary.config import Settings, settings as default_settings
from codelibrary.exceptions import (
    AuthenticationError,
    CodeLibraryError,
    IdentityProviderError,
    NotFoundError,
    OperationFailedError,
    StorageUnavailableError,
    UpstreamAuthError,
    ValidationError,
)
from codelibrary.middleware.logging import RequestLoggingMiddleware
from codelibrary.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from codelibrary.routes import auth, health, snippets
from codelibrary.services.identity_provider import IdentityProvider, SupabaseIdentityProvider
from codelibrary.services.snippet_repository import SnippetRepository
from codelibrary.storage import KVStore, build_kv_store

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"

# Exception class → HTTP status. Checked in order, so subclasses come first.
ERROR_STATUS_MAP = (
    (ValidationError, 400),
    (UpstreamAuthError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (OperationFailedError, 500),
    (StorageUnavailableError, 500),
    (IdentityProviderError, 500),
)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every query / connection at INFO.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    cfg: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(cfg.log_level)
    logger.info("=" * 60)
    logger.info("%s %s starting up (kv_backend=%s)", cfg.app_name, __version__, cfg.kv_backend)

    try:
        cfg.validate_required_for_production()
    except ValueError as e:
        # Snippet routes work without an identity provider; only sign-up fails.
        logger.error("Configuration error: %s", str(e))

    kv_store: KVStore = app.state.kv_store
    if cfg.kv_backend == "sql" and cfg.db_create_schema and hasattr(kv_store, "create_schema"):
        await kv_store.create_schema()

    logger.info("Server ready at http://%s:%d%s", cfg.backend_host, cfg.backend_port, cfg.api_prefix)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("%s shutting down...", cfg.app_name)
    await app.state.identity_provider.aclose()
    await kv_store.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _status_for(exc: CodeLibraryError) -> int:
    for exc_class, status_code in ERROR_STATUS_MAP:
        if isinstance(exc, exc_class):
            return status_code
    return 500


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Request body is not valid JSON"
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "invalid value")
    return f"Invalid request: {location}: {detail}" if location else f"Invalid request: {detail}"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every error to the `{"error": "<message>"}` envelope.

    Handler hierarchy:
        CodeLibraryError         → status from ERROR_STATUS_MAP
        RequestValidationError   → 400 (FastAPI's 422 is not used)
        StarletteHTTPException   → framework status (404 route, 405 method)
        Exception (fallback)     → 500

    Messages of 4xx errors are returned as-is. 500s only ever carry the
    exception's public message (OperationFailedError, StorageUnavailableError,
    IdentityProviderError) or GENERIC_SERVER_ERROR; context is logged only.
    """

    @app.exception_handler(CodeLibraryError)
    async def handle_code_library_error(request: Request, exc: CodeLibraryError):
        rid = request_id_var.get("")
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return _error_response(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        message = _describe_validation_error(exc)
        logger.warning("[%s] Request validation failed: %s", rid, message)
        return _error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Runs in Starlette's outermost ServerErrorMiddleware, after the request-ID
        # and CORS middleware have been unwound, so both are re-applied here.
        rid = getattr(request.state, "request_id", "") or request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        headers = _cors_headers(request, request.app.state.settings)
        if rid:
            headers[REQUEST_ID_HEADER] = rid
        return JSONResponse(
            status_code=500,
            content={"error": GENERIC_SERVER_ERROR},
            headers=headers,
        )


def _cors_headers(request: Request, cfg: Settings) -> Dict[str, str]:
    """CORS response headers for a request that bypassed CORSMiddleware."""
    origin = request.headers.get("origin")
    allowed = cfg.cors_origins_list
    if not origin:
        return {}
    if "*" in allowed:
        allow_origin = "*"
    elif origin in allowed:
        allow_origin = origin
    else:
        return {}
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Expose-Headers": f"Content-Length, {REQUEST_ID_HEADER}",
    }


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    kv_store: Optional[KVStore] = None,
    identity_provider: Optional[IdentityProvider] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings:          Defaults to the module-level settings singleton.
        kv_store:          Defaults to build_kv_store(settings).
        identity_provider: Defaults to SupabaseIdentityProvider.from_settings(settings).
    """
    cfg = settings or default_settings

    app = FastAPI(
        title=cfg.app_name,
        description=(
            "Shared library of reusable Flutter code snippets: browse, create, "
            "edit and delete snippets, and sign up for an account."
        ),
        version=__version__,
        docs_url=f"{cfg.api_prefix}/docs",
        redoc_url=f"{cfg.api_prefix}/redoc",
        openapi_url=f"{cfg.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # ── Collaborators ─────────────────────────────────────────────────────
    # Explicit None checks: an empty InMemoryKVStore is falsy (it defines __len__).
    store = kv_store if kv_store is not None else build_kv_store(cfg)
    app.state.settings = cfg
    app.state.kv_store = store
    app.state.snippet_repository = SnippetRepository(
        store, avatar_url_template=cfg.avatar_url_template
    )
    app.state.identity_provider = (
        identity_provider
        if identity_provider is not None
        else SupabaseIdentityProvider.from_settings(cfg)
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS → route.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["Content-Length", REQUEST_ID_HEADER],
        max_age=600,
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware, skip_paths=(f"{cfg.api_prefix}/health",))
    app.add_middleware(RequestIDMiddleware)

    # ── Exception Handlers ────────────────────────────────────────────────
    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(health.router, prefix=cfg.api_prefix)
    app.include_router(auth.router, prefix=cfg.api_prefix)
    app.include_router(snippets.router, prefix=cfg.api_prefix)

    return app


app = create_app()


def run() -> None:
    """Console entry point: `codelibrary-server`."""
    import uvicorn

    uvicorn.run(
        "codelibrary.main:app",
        host=default_settings.backend_host,
        port=default_settings.backend_port,
        log_level=default_settings.log_level.lower(),
    )
