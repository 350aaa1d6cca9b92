"""FastAPI application factory with middleware, routers, and lifespan."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .config import settings, setup_logging
from .dependencies import get_backend
from .errors import (
    CareerMirrorError,
    DuplicateUser,
    Forbidden,
    GenerationFailed,
    InsufficientInput,
    NotFoundOrForbidden,
    QuotaExceeded,
    SessionExpired,
    StorageError,
    Unauthenticated,
)
from .generation.orchestrator import GenerationOrchestrator
from .integrations.anthropic_client import AnthropicGenerationClient
from .integrations.cache import create_cache_service
from .rate_limit import limiter
from .storage.interfaces import Backend
from .storage.local import LocalBackend
from .storage.router import create_backend

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

_STATUS_CODES: dict[type[CareerMirrorError], int] = {
    Unauthenticated: 401,
    SessionExpired: 401,
    Forbidden: 403,
    QuotaExceeded: 403,
    NotFoundOrForbidden: 404,
    DuplicateUser: 409,
    InsufficientInput: 422,
    GenerationFailed: 502,
    StorageError: 503,
}

_startup_time: float = 0.0


def _run_migrations(database_url: str) -> None:
    """Run Alembic migrations (upgrade head) on startup."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(Path(__file__).parent.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Select the storage backend once and wire the generation services."""
    global _startup_time
    _startup_time = time.time()
    setup_logging()

    backend = create_backend(settings)
    if isinstance(backend, LocalBackend):
        _run_migrations(settings.database_url)

    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY not configured: generation and interview chat will fail")
    client = AnthropicGenerationClient(
        api_key=settings.anthropic_api_key,
        model_id=settings.generation_model,
        chat_model_id=settings.chat_model,
        timeout=settings.generation_timeout_seconds,
    )

    app.state.backend = backend
    app.state.chat_client = client
    app.state.orchestrator = GenerationOrchestrator(
        client,
        cache=create_cache_service(settings.redis_url),
        min_turns=settings.min_transcript_turns,
        temperature=settings.generation_temperature,
        max_output_tokens=settings.generation_max_output_tokens,
    )
    logger.info("CareerMirror %s started (backend=%s)", VERSION, backend.name)
    try:
        yield
    finally:
        await client.close()
        backend.close()


def error_status(exc: CareerMirrorError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_CODES:
            return _STATUS_CODES[cls]
    return 500


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    retry_after = "60"
    return JSONResponse(
        {"error": "rate_limited", "detail": str(exc.detail), "retryAfter": int(retry_after)},
        status_code=429,
        headers={"Retry-After": retry_after},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="CareerMirror", version=VERSION, lifespan=lifespan)

    # --- Exception handlers ---
    @app.exception_handler(CareerMirrorError)
    async def domain_error_handler(request: Request, exc: CareerMirrorError):
        status = error_status(exc)
        if status >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        body = {"error": exc.code, "detail": exc.message}
        if isinstance(exc, QuotaExceeded):
            body.update(plan=exc.plan, limit=exc.limit, upgradeAvailable=exc.upgrade_available)
        return JSONResponse(body, status_code=status)

    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "internal_error", "detail": "Internal server error"}, status_code=500)

    # --- Middleware stack (LIFO: last added = outermost) ---
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    if settings.trusted_hosts_list != ["*"]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts_list)

    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
        return response

    # --- API v1 (all JSON endpoints) ---
    from .api_v1 import api_v1_router

    app.include_router(api_v1_router)

    # --- Health check ---
    @app.get("/health")
    def health(backend: Backend = Depends(get_backend)):
        healthy = backend.health()
        uptime = round(time.time() - _startup_time, 1) if _startup_time else 0.0
        return {
            "status": "ok" if healthy else "degraded",
            "backend": backend.name,
            "version": VERSION,
            "uptime_seconds": uptime,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_app()
