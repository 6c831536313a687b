"""
api/main.py -- FastAPI application entry point for the Storefront API.

Exposes user management, product catalog and token authentication over HTTP.

Run with:  python main.py serve
           uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests       -- one log line per request with latency and user id
  2. CORSMiddleware     -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter

Lifespan owns the database engine: it builds the engine and both stores on
startup, seeds the demo data when enabled, and disposes the pool on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse, ProbeResponse, ServiceInfoResponse, UserOut
from api.routes.v1.auth import router as auth_router
from api.routes.v1.products import router as products_router
from api.routes.v1.users import router as users_router
from auth.dependencies import try_get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from catalog.store import ProductStore
from core.config import APP_VERSION, get_settings
from core.database import create_db_engine, ping
from core.errors import ApiError

settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("storefront.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage the engine and stores across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Both stores share one engine, so one pool serves every request.
    Demo rows are only inserted into empty tables, so restarts are idempotent.
    """
    logger.info("Storefront API starting up (version %s)", APP_VERSION)
    engine = create_db_engine(settings.database_url)
    app.state.engine = engine
    app.state.user_store = UserStore(engine)
    app.state.product_store = ProductStore(engine)
    if settings.seed_demo_data:
        users = app.state.user_store.seed_demo_users(hash_password)
        products = app.state.product_store.seed_demo_products()
        logger.info("Demo data ready (users inserted=%d, products inserted=%d)", users, products)

    yield

    engine.dispose()
    logger.info("Storefront API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Storefront API",
    description="Gestión de usuarios y productos con autenticación por token.",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/api-docs",
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST registered class is
# the outermost. SlowAPI is registered first so CORS headers are still added
# to 429 responses.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Wraps every route at the ASGI level. get_current_user() stores the resolved
# user on request.state, which is shared with this middleware, so the log line
# can attribute the request without parsing the header a second time.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    user = getattr(request.state, "user", None)
    logger.info(
        "%s %s %d %.1fms %s user=%s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
        user.id if user is not None else "anonymous",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix=settings.api_prefix, tags=["Auth"])
app.include_router(users_router, prefix=settings.api_prefix, tags=["Users"])
app.include_router(products_router, prefix=settings.api_prefix, tags=["Products"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, code: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code, detail=detail).model_dump(),
    )


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Translate the core.errors taxonomy into its HTTP status."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return _error(exc.status_code, "Error interno del servidor", exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(
        429,
        "Demasiados intentos. Intenta de nuevo más tarde.",
        "rate_limited",
        detail=str(exc.detail),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body, query or path fails type validation."""
    return _error(400, "Datos de entrada inválidos", "validation_error", detail=str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Envelope for framework-raised HTTP errors (unknown route, wrong method)."""
    route = f"{request.method} {request.url.path}"
    if exc.status_code == 404:
        logger.warning("Unknown route %s", route)
        return _error(404, "Endpoint no encontrado", "endpoint_not_found", detail=route)
    if exc.status_code == 405:
        return _error(405, "Método no permitido", "method_not_allowed", detail=route)
    return _error(exc.status_code, str(exc.detail), f"http_{exc.status_code}")


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Storage failures surface as 500; the driver message stays in the log."""
    logger.exception("Storage error on %s %s", request.method, request.url.path)
    return _error(500, "Error interno del servidor", "storage_error")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Error interno del servidor", "internal_error")


# ---------------------------------------------------------------------------
# Health endpoints
#
# Defined directly in main.py (not in a router) so they are always reachable
# at a fixed path regardless of API_PREFIX. No auth, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Report version and component status. 503 when the database is down."""
    db_ok = ping(request.app.state.engine)
    body = HealthResponse(
        status="healthy" if db_ok else "unhealthy",
        version=APP_VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "unavailable"},
    )
    return JSONResponse(status_code=200 if db_ok else 503, content=body.model_dump())


@app.get("/health/ready", response_model=ProbeResponse, tags=["Health"])
def ready(request: Request) -> JSONResponse:
    """Readiness probe: can this instance serve traffic right now?"""
    if ping(request.app.state.engine):
        return JSONResponse(status_code=200, content=ProbeResponse(status="ready").model_dump())
    return JSONResponse(status_code=503, content=ProbeResponse(status="not_ready").model_dump())


@app.get("/health/live", response_model=ProbeResponse, tags=["Health"])
def live() -> ProbeResponse:
    """Liveness probe: the process is up and the event loop answers."""
    return ProbeResponse(status="alive")


# ---------------------------------------------------------------------------
# Service info
# ---------------------------------------------------------------------------


@app.get("/", response_model=ServiceInfoResponse, tags=["Info"])
def service_info(user: Optional[User] = Depends(try_get_current_user)) -> ServiceInfoResponse:
    """Describe the API. Echoes the caller when a valid token is supplied."""
    p = settings.api_prefix
    return ServiceInfoResponse(
        message="Storefront API",
        version=APP_VERSION,
        docs_url="/api-docs",
        authenticated_as=UserOut.from_user(user) if user is not None else None,
        endpoints={
            "auth": {
                "login": f"POST {p}/auth/login",
                "logout": f"POST {p}/auth/logout",
                "me": f"GET {p}/auth/me",
            },
            "users": {
                "list": f"GET {p}/users",
                "get": f"GET {p}/users/{{id}}",
                "create": f"POST {p}/users",
                "update": f"PUT {p}/users/{{id}}",
                "delete": f"DELETE {p}/users/{{id}}",
            },
            "products": {
                "list": f"GET {p}/products",
                "get": f"GET {p}/products/{{id}}",
                "create": f"POST {p}/products",
                "update": f"PUT {p}/products/{{id}}",
                "stock": f"PATCH {p}/products/{{id}}/stock",
                "delete": f"DELETE {p}/products/{{id}}",
            },
            "health": {
                "health": "GET /health",
                "ready": "GET /health/ready",
                "live": "GET /health/live",
            },
        },
    )
