"""
api/main.py -- FastAPI application factory for the credentials service.

Run with:  uvicorn asgi:app --reload

create_app() builds a fully independent application: its own Settings, its
own UserStore, and its own service objects hung off app.state. Nothing is
module-global, so tests can run several apps side by side against separate
databases.

Middleware stack (outermost to innermost):
  1. log_requests   -- one access-log line per request with latency
  2. CORSMiddleware -- adds CORS headers for allowed browser origins

Lifespan builds the store and services on startup and disposes the store's
connection pool on shutdown (only when the lifespan created it).
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.dependencies import AuthorizationGate
from auth.errors import AccountError, AuthError
from auth.passwords import PasswordHasher
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("credapi.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def _lifespan_for(settings: Settings, store: UserStore | None):
    """Return the lifespan context manager for one app instance.

    Startup order matters: the store must exist before AccountService, and
    TokenService before both AccountService and the gate.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Credentials API starting up")
        owns_store = store is None
        if owns_store:
            user_store = UserStore(settings.database_url, timeout=settings.db_timeout_seconds)
        else:
            user_store = store
        tokens = TokenService(settings)
        app.state.user_store = user_store
        app.state.gate = AuthorizationGate(tokens)
        app.state.accounts = AccountService(
            user_store,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            tokens,
            max_page_size=settings.users_max_page_size,
        )
        logger.info("User store initialized")

        yield

        if owns_store:
            user_store.close()
        logger.info("Credentials API shutdown complete")

    return lifespan


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Map every auth.errors type to its status code.

    401s carry WWW-Authenticate: Bearer. The 403 for a deactivated account
    is an AuthError subclass but is not a challenge, so it does not.
    """
    response = JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(exclude_none=True),
    )
    if isinstance(exc, AuthError) and exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with structured error when the request body or query params fail parsing."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 route, 405 method)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, store: UserStore | None = None) -> FastAPI:
    """Build an application instance.

    Args:
        settings: Configuration. Defaults to the get_settings() singleton.
        store:    A pre-built UserStore to use instead of opening
                  settings.database_url. The caller keeps ownership and must
                  close it.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Credentials API",
        description="Account registration, login, token refresh and user management.",
        version=__version__,
        lifespan=_lifespan_for(settings, store),
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )

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

    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(auth_router, tags=["Auth"])
    app.include_router(users_router, tags=["Users"])

    @app.get("/health", include_in_schema=True, tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness, version, and whether the database answers. No auth."""
        db_ok = request.app.state.user_store.ping()
        return HealthResponse(version=__version__, database="ok" if db_ok else "error")

    return app
