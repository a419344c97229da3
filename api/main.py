"""
api/main.py -- FastAPI application entry point for Inkwell.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for the frontend origins
  2. log_requests   -- one access-log line per request

Lifespan builds every long-lived object exactly once, from one Settings
instance, and hangs them on app.state:
  settings, user_store, blog_store, tokens, google, reconciler
Routes read from app.state; nothing below this module looks configuration up
on its own.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.blogs import router as blogs_router
from api.routes.v1.users import router as users_router
from auth.google import GoogleIdentityVerifier
from auth.reconciler import AccountReconciler
from auth.store import UserStore
from auth.tokens import TokenIssuer
from blogs.store import BlogStore
from core.config import get_settings
from core.errors import INTERNAL_ERROR_MESSAGE, ErrorKind, InkwellError

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("inkwell.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the object graph on startup; release it on shutdown.

    Startup order matters:
      1. Settings first -- a missing SECRET_ACCESS_KEY in production stops the
         process here, before any store is opened.
      2. Stores -- users before blogs, since blog listings join users.
      3. Token issuer and Google verifier, then the reconciler that uses
         them.
    """
    settings = get_settings()
    logger.info("Inkwell API starting up")
    app.state.settings = settings
    app.state.user_store = UserStore(settings.database_url, timeout=settings.request_timeout_seconds)
    app.state.blog_store = BlogStore(settings.database_url, timeout=settings.request_timeout_seconds)
    logger.info("Stores initialized")
    app.state.tokens = TokenIssuer(settings)
    app.state.google = GoogleIdentityVerifier(settings)
    if not settings.firebase_project_id:
        logger.warning("FIREBASE_PROJECT_ID not set -- Google sign-in will reject every token")
    app.state.reconciler = AccountReconciler(app.state.user_store, app.state.tokens, app.state.google, settings)

    yield

    app.state.blog_store.close()
    app.state.user_store.close()
    logger.info("Inkwell API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Inkwell API",
    description="Blog platform backend: accounts, sessions, and blog content.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "https://bloging-website-frontend.vercel.app"],
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
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


# ---------------------------------------------------------------------------
# Router registration
#
# No version prefix: the paths are the ones the existing frontend calls.
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])
app.include_router(blogs_router, tags=["Blogs"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(InkwellError)
async def inkwell_error_handler(request: Request, exc: InkwellError) -> JSONResponse:
    """Render an expected failure with the status code its kind maps to."""
    if exc.kind is ErrorKind.INTERNAL_ERROR:
        logger.error("Internal error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a dict detail. When detail is
    already a structured dict, use it directly as the error field rather than
    stringifying it -- str(dict) produces a Python repr, not JSON.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code=ErrorKind.INTERNAL_ERROR.value, message=INTERNAL_ERROR_MESSAGE),
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Liveness and health
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> PlainTextResponse:
    return PlainTextResponse("Backend is up and running")


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and whether the database answers."""
    database = "ok"
    try:
        with request.app.state.user_store.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
