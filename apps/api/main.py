"""
Agent Training API.

Wires configuration, logging, error reporting, middleware and routers
together. Run with `uvicorn main:app`.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.database import check_db_connection
from core.exceptions import APIException, DomainError, ValidationError
from core.logging import setup_logging
from core.rate_limit import RateLimitMiddleware
from routers import alerts, coaching, feedback, response_templates, scenarios, simulations, team, users

APP_VERSION = "1.0.0"

DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]

setup_logging()
logger = logging.getLogger(__name__)


def _scrub_event(event, hint):
    """Drop credentials and transcripts before an event leaves the process."""
    request = event.get("request") or {}
    headers = request.get("headers")
    if isinstance(headers, dict):
        for name in ("authorization", "Authorization", "cookie", "Cookie"):
            headers.pop(name, None)
    # message bodies are agent/client conversation text
    request.pop("data", None)
    return event


def _init_sentry() -> None:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.redis import RedisIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        release=f"agent-training-api@{APP_VERSION}",
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            RedisIntegration(),
            CeleryIntegration(),
        ],
        send_default_pii=False,
        before_send=_scrub_event,
    )


if settings.SENTRY_DSN:
    try:
        _init_sentry()
        logger.info(f"Sentry enabled for {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Sentry initialization failed, continuing without it: {e}")


app = FastAPI(
    title="Agent Training API",
    description="Simulated client calls, LLM evaluation, coaching plans and supervisor alerts "
                "for contact-center agents.",
    version=APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

if settings.DEBUG:
    allowed_origins = ["*"]
else:
    allowed_origins = settings.cors_origins or DEV_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware, default_limit=settings.RATE_LIMIT_PER_MINUTE, window=60)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One log line per request, tagged with a request id echoed back to the caller."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    context = {"request_id": request_id, "method": request.method, "path": request.url.path}
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.error(f"{request.method} {request.url.path} failed", exc_info=True,
                     extra={"extra_fields": context})
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms}ms",
        extra={"extra_fields": {**context, "status_code": response.status_code, "duration_ms": elapsed_ms}},
    )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(elapsed_ms / 1000)
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """HTTP errors raised by routers, with their error_code for the frontend."""
    content = {"detail": exc.detail}
    if exc.error_code:
        content["error_code"] = exc.error_code
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and parameters, in the same shape as every other error."""
    return await api_exception_handler(request, ValidationError(jsonable_encoder(exc.errors())))


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Service errors that escaped a router keep their 4xx status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={"extra_fields": {"method": request.method, "path": request.url.path}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health():
    """Load balancer check: 200 while the database answers, 503 otherwise."""
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "timestamp": time.time()}


def _timed(check):
    started = time.perf_counter()
    try:
        result = check()
    except Exception as e:
        return {"status": "error", "error": str(e), "latency_ms": None}
    result["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return result


def _database_status():
    return {"status": "healthy" if check_db_connection() else "unhealthy"}


def _redis_status():
    from core.cache import get_redis_client

    client = get_redis_client()
    if client is None:
        return {"status": "unavailable"}
    client.ping()
    return {"status": "healthy"}


@app.get("/health/detailed")
async def health_detailed():
    """
    Dependency status for dashboards. Always 200.

    Redis and the LLM key are optional: without them the API runs degraded
    (no cache or rate limiting, fallback evaluations).
    """
    checks = {
        "database": _timed(_database_status),
        "redis": _timed(_redis_status),
        "llm": {"status": "configured" if settings.OPENAI_API_KEY else "unconfigured"},
    }

    core_statuses = [checks["database"]["status"], checks["redis"]["status"]]
    if all(s == "healthy" for s in core_statuses):
        overall = "healthy"
    elif "error" in core_statuses or checks["database"]["status"] != "healthy":
        overall = "unhealthy"
    else:
        overall = "degraded"

    return {
        "status": overall,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "checks": checks,
    }


@app.get("/ping")
async def ping():
    """Liveness only; no dependencies checked."""
    return {"pong": True}


for module in (users, scenarios, simulations, coaching, alerts, feedback, team, response_templates):
    app.include_router(module.router)
