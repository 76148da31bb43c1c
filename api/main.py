"""
api/main.py -- FastAPI application entry point for the MeuBonsai.App identity API.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- applies app-wide default limits from api.limiter

Lifespan handles startup (engine, identity store, mailer) and shutdown
(dispose the engine) symmetrically. Schema changes are NOT applied at
startup: run `python main.py migrate` or POST /api/v1/migrations.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse
from api.routes.v1.activations import router as activations_router
from api.routes.v1.migrations import router as migrations_router
from api.routes.v1.sessions import router as sessions_router
from api.routes.v1.status import router as status_router
from api.routes.v1.user import router as user_router
from api.routes.v1.users import router as users_router
from auth.store import IdentityStore
from auth.tokens import clear_session_cookie
from core.config import get_settings
from core.database import create_db_engine
from core.errors import AppError
from core.mailer import SMTPMailer

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("bonsai.api")

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the engine, identity store and mailer; dispose the engine on exit.

    The engine is created once and shared: the identity store, the migration
    endpoints and the status probe all read app.state.engine.
    """
    settings = get_settings()
    logger.info("MeuBonsai.App API starting up")
    app.state.engine = create_db_engine(settings.database_url)
    app.state.store = IdentityStore(app.state.engine)
    app.state.mailer = SMTPMailer(settings)
    logger.info("Identity store initialized (%s)", app.state.engine.dialect.name)

    yield

    app.state.store.close()
    logger.info("MeuBonsai.App API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="MeuBonsai.App API",
    description="Identity and access control: registration, activation, sessions and feature-based authorization.",
    version=_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack (TrustedHost -> CORS -> SlowAPI)
#
# CORS allows credentials: the front end sends the session_id cookie
# cross-origin, so cors_origins must list exact origins, never "*".
# ---------------------------------------------------------------------------

_settings = get_settings()

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPIMiddleware and @limiter.limit both read app.state.limiter.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Access log: method, path, status, latency, client address.
# Cookies and bodies are never logged.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(user_router, prefix="/api/v1", tags=["Users"])
app.include_router(sessions_router, prefix="/api/v1", tags=["Sessions"])
app.include_router(activations_router, prefix="/api/v1", tags=["Activations"])
app.include_router(migrations_router, prefix="/api/v1", tags=["Migrations"])
app.include_router(status_router, prefix="/api/v1", tags=["Status"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every failure leaves as {"error": {code, message, action, detail?}}.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, **detail) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(**detail)).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error raised anywhere below the routes.

    Internal errors keep the generic message; the failed precondition in
    exc.cause goes to the log only. When the request carried a session
    cookie that no longer resolves, the error response also clears it.
    """
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.cause or exc.message,
            exc_info=exc,
        )
    response = _error_response(exc.status_code, **exc.to_dict())
    if getattr(request.state, "stale_session_cookie", False):
        clear_session_cookie(response)
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 for login attempts over LOGIN_RATE_LIMIT, with Retry-After in seconds."""
    logger.warning("Login rate limit hit by %s", request.client.host if request.client else "unknown")
    response = _error_response(
        429,
        code="rate_limited",
        message="Too many login attempts.",
        action="Wait a moment and try again.",
        detail=str(exc),
    )
    response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 when a body, path or query parameter does not match its model."""
    return _error_response(
        422,
        code="validation_error",
        message="The data sent is invalid.",
        action="Adjust the data sent and try again.",
        detail=str(exc.errors()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown route, wrong method, rejected host.
    return _error_response(exc.status_code, code=f"http_{exc.status_code}", message=str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, answer with a generic 500."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(
        500,
        code="internal_error",
        message="An unexpected error occurred.",
        action="Contact support.",
    )
