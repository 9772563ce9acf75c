"""
api/main.py -- FastAPI application entry point for Biblio.

Exposes the catalog services over HTTP. Every body is a result envelope
{status, data?, message?, code?}; failures are HTTP 200 unless noted in the
route modules (401 for rejected credentials, 429 when rate limited, 500 for
unexpected errors).

Run with:      python main.py
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- app-wide slowapi checks; route limits run in @limiter.limit
  4. SessionMiddleware     -- signed cookie sessions (not used for identity)

Lifespan builds the store and the services once and tears the store down on
shutdown. Services are handed to routes through app.state; nothing is a
module-level global.
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
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.limiter import limiter
from api.models import HealthResponse
from api.responses import envelope_response
from api.routes.institutions import router as institutions_router
from api.routes.users import router as users_router
from auth.gateway import AuthenticationGateway
from auth.tokens import CredentialService
from catalog.service import ResourceService
from catalog.store import CatalogStore
from catalog.tenants import TenantResolver
from core.config import get_settings
from core.errors import VALIDATION_ERROR
from core.results import fail, fail_with

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("biblio.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, store: CatalogStore, credentials: CredentialService) -> None:
    """Build the service graph over a store and attach it to app.state.

    Shared by the real lifespan and the test fixtures so both get the same
    graph: store -> TenantResolver -> ResourceService -> AuthenticationGateway.
    """
    tenants = TenantResolver(store)
    resources = ResourceService(store, credentials, tenants)
    app.state.store = store
    app.state.credentials = credentials
    app.state.tenants = tenants
    app.state.resources = resources
    app.state.gateway = AuthenticationGateway(resources, credentials)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the store and services on startup; dispose the engine on shutdown."""
    logger.info("Biblio API starting up")
    store = CatalogStore(_settings.effective_database_url)
    logger.info("Catalog store initialized")
    wire_services(app, store, CredentialService.from_settings(_settings))
    logger.info("Services initialized (token lifetime %s)", _settings.token_expires_in)

    yield

    app.state.store.close()
    logger.info("Biblio API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Biblio API",
    description="Multi-tenant library catalog: institutions, authors, books and users.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the existing stack, so the LAST one added is the
# outermost. Register innermost first: Session -> SlowAPI -> CORS -> TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(SessionMiddleware, secret_key=_settings.session_secret)

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
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

app.include_router(institutions_router, tags=["Institutions"])
app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every handler answers with the same envelope shape as the routes, so
# clients never need a second error schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a fail envelope and Retry-After when a rate limit is hit.

    Plain def: SlowAPIMiddleware calls handlers for app-wide limits without
    awaiting them.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = envelope_response(fail(f"Too many requests: {exc.detail}"), status_code=429)
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """A body that is not a JSON object is a validation failure like any other."""
    errors = exc.errors()
    message = errors[0].get("msg", "invalid request") if errors else "invalid request"
    return envelope_response(fail_with(VALIDATION_ERROR, f"body: {message}"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP exceptions as fail envelopes.

    Dependencies raise HTTPException with detail already shaped as an
    envelope (see auth.dependencies); plain string details are wrapped.
    """
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"status": "fail", "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return envelope_response(fail("An unexpected error occurred."), status_code=500)


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database round-trip check."""
    try:
        database = "ok" if request.app.state.store.ping() else "error"
    except Exception:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
