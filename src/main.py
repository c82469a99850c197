"""
4K Poster Badge Service - Main Application

FastAPI application with:
- Browser flow (/ and /generate) and JSON/binary API (/api/v1/)
- Structured logging with structlog
- Prometheus metrics
- Global exception handling
- Pluggable badge source (embedded / remote / synthesized)
"""

import time
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from src.core.config import settings
from src.core.logging import setup_logging, get_logger, request_id_var
from src.core.exceptions import register_exception_handlers
from src.core.metrics import set_app_info, http_requests_total, http_request_duration_seconds
from src.api.v1 import api_v1_router
from src.api.web import router as web_router
from src.engines.poster.badge_cache import BadgeCache
from src.engines.poster.badges import create_badge_source


# =============================================================================
# Initialize Logging
# =============================================================================
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=settings.LOG_FORMAT_JSON
)
logger = get_logger(__name__)


# =============================================================================
# Lifespan Handler
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - startup and shutdown."""
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        badge_source=settings.BADGE_SOURCE
    )

    # One outbound client per process; every fetch is bounded by its timeout
    app.state.http_client = httpx.AsyncClient(
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
        headers={"User-Agent": f"4k-poster-badge/{settings.APP_VERSION}"}
    )

    app.state.badge_cache = None
    if settings.BADGE_SOURCE == "remote" and settings.BADGE_CACHE_ENABLED:
        app.state.badge_cache = BadgeCache(ttl_seconds=settings.BADGE_CACHE_TTL_SECONDS)

    app.state.badge_source = create_badge_source(
        settings.BADGE_SOURCE,
        client=app.state.http_client,
        cache=app.state.badge_cache
    )
    logger.info(
        "badge_source_ready",
        badge_source=app.state.badge_source.name,
        cache_enabled=app.state.badge_cache is not None
    )

    set_app_info(
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        badge_source=settings.BADGE_SOURCE
    )

    logger.info("application_ready")

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await app.state.http_client.aclose()
    logger.info("application_shutdown_complete")


# =============================================================================
# Create FastAPI Application
# =============================================================================
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Adds a "4K" badge to the top-right corner of a poster.

    - **Input**: multipart `file` upload or form `url` (file wins if both are sent)
    - **Badge**: 15% of the poster width, clamped to 80-500px, 20px inset
    - **Output**: JPEG at quality 90

    ## Endpoints

    - `GET /` and `POST /generate`: browser form and result page
    - `POST /api/v1/posters`: raw `image/jpeg` response
    - `GET /api/v1/metrics`: Prometheus metrics
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)


# =============================================================================
# Middleware
# =============================================================================

# CORS
cors_origins = settings.CORS_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_request_timing(request: Request, call_next):
    """Track request timing for metrics."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(duration)

    http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    response.headers["X-Process-Time"] = str(duration)

    return response


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Give every request an id that shows up in logs and error bodies."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers.setdefault("X-Request-ID", request_id)
    return response


# =============================================================================
# Register Exception Handlers
# =============================================================================
register_exception_handlers(app)


# =============================================================================
# Routers
# =============================================================================
app.include_router(web_router, tags=["web"])
app.include_router(api_v1_router)


# =============================================================================
# Root Endpoints
# =============================================================================

@app.get("/api/info", tags=["root"])
async def info():
    """Service information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "badge_source": settings.BADGE_SOURCE,
        "docs": "/api/docs",
        "api_v1": "/api/v1",
        "metrics": "/api/v1/metrics"
    }


@app.get("/health", tags=["health"])
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


# =============================================================================
# Development Server
# =============================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
