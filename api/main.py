"""
Main FastAPI application definitions, middleware, and request handlers.
"""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from api.exceptions import add_exception_handlers
from api.rate_limit import GlobalRateLimitMiddleware
from api.routes import admin, auth, prompts, social, system
from config.settings import settings
from container import container, container_manager, get_metrics
from core.exceptions import ConfigurationError
from infrastructure.monitoring import configure_structlog, get_logger
from security import get_security_headers

configure_structlog(
    level=settings.monitoring.log_level,
    json_output=settings.monitoring.log_format == "json",
)
logger = get_logger(__name__)

# ============================================================================
# MIDDLEWARE STACK (Cross-Cutting Concerns)
# ============================================================================


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach environment-aware security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for k, v in get_security_headers().items():
            if k not in response.headers:
                response.headers[k] = v
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID for correlation, bound into every log line."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Record request count and latency."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        metrics = request.app.dependency_overrides.get(get_metrics, get_metrics)()
        metrics.record_request(request.method, response.status_code, time.perf_counter() - start)
        return response


class HostValidationMiddleware(BaseHTTPMiddleware):
    """Validate Host header against settings.allowed_hosts."""

    async def dispatch(self, request: Request, call_next):
        host = request.headers.get("host", "").split(":")[0].lower()
        if (
            settings.allowed_hosts
            and host
            and host not in [h.lower() for h in settings.allowed_hosts]
        ):
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"success": False, "message": "Invalid Host header"},
            )
        return await call_next(request)


# ============================================================================
# FASTAPI APPLICATION INITIALIZATION
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown.

    Startup refuses to continue when the field cipher cannot be built or
    fails its round trip, or when the database is unreachable. An
    unreachable key-value store only degrades rate limiting and caching.
    """
    logger.info("validating_configuration", environment=settings.environment)

    if settings.is_production and not settings.encryption.configured:
        raise ConfigurationError("ENCRYPTION_KEY is required in production")

    cipher = container.cipher()
    if cipher.uses_fallback_key:
        logger.warning("field_cipher_fallback_key", detail="ENCRYPTION_KEY not set; using derived fallback key")
    if not cipher.self_test():
        raise ConfigurationError("Field cipher self-test failed")

    await container_manager.initialize()
    if settings.is_development:
        await container.database().create_schema()
        logger.info("database_schema_ensured")

    logger.info("application_startup_complete")

    yield

    await container_manager.cleanup()
    logger.info("application_shutdown_complete")


app = FastAPI(
    title=settings.app_name,
    description="Prompt sharing platform with encrypted prompt text, social features and moderation",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

add_exception_handlers(app)

if settings.monitoring.enable_tracing:
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

    FastAPIInstrumentor.instrument_app(app)
    logger.info("OpenTelemetry tracing enabled")

app.include_router(auth.router)
app.include_router(prompts.router)
app.include_router(social.router)
app.include_router(admin.router)
app.include_router(system.router)


@app.get("/", include_in_schema=False)
async def root():
    """Redirect root to API documentation."""
    return RedirectResponse(url="/docs")


# Middleware stack (order matters: last added = first executed)
app.add_middleware(GlobalRateLimitMiddleware)
app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Accept",
        "Accept-Language",
        "Content-Type",
        "Authorization",
        "X-Request-ID",
    ],
    expose_headers=[
        "X-Request-ID",
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
        "Retry-After",
    ],
)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(HostValidationMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info", access_log=True
    )
