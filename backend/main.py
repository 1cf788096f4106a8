# main.py — DevThon Problem Statement Portal API
# Features:
# - Request correlation IDs + response timing
# - Per-IP sliding-window rate limiting on /api
# - Security headers
# - Uniform {success, data, message, code, errors} envelope for every error
# - Health check with DB verification

import time
import uuid
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import Database, get_db_session
from errors import AppError, ValidationError
from logging_system import configure_logging, set_request_id, reset_request_id
from rate_limit import SlidingWindowRateLimiter
from responses import ok, fail
from telemetry import setup_telemetry, instrument_engine
from validation import format_errors

configure_logging(config.LOG_LEVEL, json_output=config.is_production())
logger = logging.getLogger("devthon")

VERSION = "1.0.0"
STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting DevThon API", extra={"environment": config.ENVIRONMENT})
    config.validate_config()

    database = Database(config.DATABASE_URL, echo=config.SQL_ECHO)
    await database.create_all()
    app.state.database = database
    logger.info("Database initialized")

    instrument_engine(database.engine, tracer_provider)
    yield
    logger.info("Shutting down DevThon API")
    await database.dispose()


app = FastAPI(
    title="DevThon Problem Statement Portal",
    description="Problem statement submission, review and discovery for DevThon",
    version=VERSION,
    lifespan=lifespan,
    docs_url=None if config.is_production() else "/docs",
    redoc_url=None,
)

# no-op unless OTEL_EXPORTER_OTLP_ENDPOINT is set
tracer_provider = setup_telemetry(app)

rate_limiter = SlidingWindowRateLimiter(
    config.RATE_LIMIT_MAX_REQUESTS,
    config.RATE_LIMIT_WINDOW_MS / 1000,
)


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and config.TRUST_PROXY:
        # the proxy appends the peer it saw; earlier entries are client-supplied
        return forwarded.split(",")[-1].strip()
    return request.client.host if request.client else "unknown"


def _log_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "user_id": getattr(request.state, "user_id", None),
    }


# ============================================================
# MIDDLEWARE: Rate limiting
# ============================================================

@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if not request.url.path.startswith("/api") or request.method == "OPTIONS":
        return await call_next(request)

    key = _client_ip(request)
    allowed, retry_after = rate_limiter.hit(key)
    if not allowed:
        logger.warning("Rate limit exceeded", extra={"client_ip": key, "path": request.url.path})
        return JSONResponse(
            status_code=429,
            content=fail("Too many requests, please try again later.", "RATE_LIMIT_EXCEEDED"),
            headers={"Retry-After": str(retry_after)},
        )

    response = await call_next(request)
    response.headers["X-RateLimit-Limit"] = str(rate_limiter.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(rate_limiter.remaining(key))
    return response


# ============================================================
# MIDDLEWARE: Security Headers
# ============================================================

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": "default-src 'self'; frame-ancestors 'none'",
}


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response


# ============================================================
# MIDDLEWARE: Correlation IDs + Timing
# ============================================================

@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)

    start = time.perf_counter()
    try:
        try:
            response = await call_next(request)
        except Exception as exc:
            # unhandled errors skip the inner middlewares
            response = internal_error_response(request, exc)
            response.headers.update(SECURITY_HEADERS)
        duration = time.perf_counter() - start

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.4f}s"
        logger.info(
            f"{request.method} {request.url.path} → {response.status_code} ({duration:.3f}s)",
            extra={"status_code": response.status_code, "user_id": getattr(request.state, "user_id", None)},
        )
        return response
    finally:
        reset_request_id(token)


# ============================================================
# CORS + compression (outermost)
# ============================================================

app.add_middleware(GZipMiddleware, minimum_size=1024)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
)


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{exc.code}: {exc.message}", extra={**_log_context(request), "status_code": exc.status_code})

    errors = exc.errors if isinstance(exc, ValidationError) else None
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message, exc.code, errors))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = format_errors(exc.errors())
    logger.warning("Request validation failed", extra={**_log_context(request), "fields": list(errors)})
    return JSONResponse(
        status_code=422,
        content=fail("Validation failed", "VALIDATION_ERROR", errors),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Unique constraint violated", extra=_log_context(request))
    return JSONResponse(status_code=409, content=fail("Duplicate entry", "DUPLICATE_KEY"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message, code = f"Route {request.method} {request.url.path} not found", "NOT_FOUND"
    elif exc.status_code == 405:
        message, code = "Method not allowed", "METHOD_NOT_ALLOWED"
    else:
        message, code = str(exc.detail), "HTTP_ERROR"
    logger.warning(message, extra={**_log_context(request), "status_code": exc.status_code})
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(message, code),
        headers=getattr(exc, "headers", None),
    )


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception: {exc}", exc_info=True, extra=_log_context(request))
    body = fail("Internal server error", "INTERNAL_ERROR")
    if not config.is_production():
        body["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=body)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    return internal_error_response(request, exc)


# ============================================================
# ROUTERS
# ============================================================

from routers import auth, problems, organization, admin

app.include_router(auth.router)
app.include_router(problems.router)
app.include_router(organization.router)
app.include_router(admin.router)


# ============================================================
# HEALTH & ROOT
# ============================================================

@app.get("/api/health")
async def health_check(db: AsyncSession = Depends(get_db_session)):
    """Liveness + database connectivity"""
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {e}")
        db_status = "error"

    data = {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": VERSION,
        "environment": config.ENVIRONMENT,
        "database": db_status,
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return JSONResponse(status_code=200 if db_status == "connected" else 503, content=ok(data))


@app.get("/")
async def root():
    return ok({
        "name": "DevThon Problem Statement Portal",
        "version": VERSION,
        "health": "/api/health",
    })


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=not config.is_production(),
    )
