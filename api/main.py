"""
api/main.py -- FastAPI application factory for the OAK portal.

create_app() builds the app around one Settings instance. The settings are
stored on app.state.settings before any request arrives, and every handler
reads them from there; nothing below this module calls get_settings().

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests       -- one log line per request with latency
  2. CORSMiddleware     -- adds CORS headers for allowed browser origins
  3. SessionMiddleware  -- signed cookie carrying flash messages

Lifespan opens the user store on startup and disposes of its engine on
shutdown. A database that cannot be reached at startup aborts the process.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.store import UserStore
from core.config import Settings

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("oak.api")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def _make_lifespan(settings: Settings, user_store: Optional[UserStore]):
    """Return the lifespan for one app.

    When a store is passed in (tests), it is used as-is and left open on
    shutdown; the caller owns it.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("OAK portal starting up (environment=%s)", settings.environment)
        owned = user_store is None
        if owned:
            try:
                store = UserStore(settings.database_url)
            except SQLAlchemyError:
                logger.critical("Database connection failed; refusing to start", exc_info=True)
                raise
        else:
            store = user_store
        app.state.user_store = store
        logger.info("User store initialized")

        yield

        if owned:
            store.close()
        logger.info("OAK portal shutdown complete")

    return lifespan


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler returns the same ErrorResponse envelope. Form endpoints never
# reach these for user errors; they redirect with a flash message instead.
# ---------------------------------------------------------------------------


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception goes to the log only; the client gets a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings, user_store: Optional[UserStore] = None) -> FastAPI:
    """Assemble the API half of the app. asgi.py adds the web router."""
    app = FastAPI(
        title="OAK Investment Portal",
        description="Signup, login and role-gated dashboards for OAK investors.",
        version=__version__,
        lifespan=_make_lifespan(settings, user_store),
    )
    app.state.settings = settings

    # add_middleware() wraps outward: the last one added sees the request first.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="oak_session",
        max_age=24 * 60 * 60,
        same_site="lax",
        https_only=settings.secure_cookies,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
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

    app.include_router(auth_router, prefix="/api", tags=["Auth"])

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get("/api/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Liveness plus a store round-trip. No auth, no rate limit."""
        components = {"app": "ok"}
        try:
            request.app.state.user_store.ping()
            components["database"] = "ok"
        except SQLAlchemyError:
            logger.warning("Health check: database ping failed", exc_info=True)
            components["database"] = "error"
        status = "healthy" if components["database"] == "ok" else "degraded"
        return HealthResponse(status=status, version=__version__, components=components)

    return app
