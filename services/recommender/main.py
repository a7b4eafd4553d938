"""
Recommender FastAPI service — signal ingestion, visitor profiles, block layouts.

Entrypoint: uvicorn services.recommender.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import anthropic
import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from services.recommender.config import settings
from services.recommender.middleware.cors import setup_cors
from services.recommender.middleware.rate_limit import RateLimitMiddleware
from services.recommender.middleware.sentry import setup_sentry
from services.recommender.profile.session import ProfileStore, SessionRegistry
from services.recommender.routers import generate, health, sessions

logger = logging.getLogger(__name__)

# Shared redis reference: set during lifespan, read by rate limiter
_redis_holder: dict = {"client": None}

SIGNALS_PATH_PREFIX = "/sessions/"

_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    # Redis for profile persistence + rate limiting
    redis_client = None
    if settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception as e:
            # Persistence and rate limiting degrade gracefully
            logger.warning("Redis unavailable, running without persistence: %s", e)
            redis_client = None

    _redis_holder["client"] = redis_client
    app.state.redis = redis_client
    app.state.settings = settings

    app.state.sessions = SessionRegistry(
        ProfileStore(redis_client, ttl_seconds=settings.session_ttl_s),
        idle_ttl_s=settings.session_ttl_s,
        max_sessions=settings.session_max_contexts,
    )

    # Reasoning collaborator: None means every request uses the static fallback
    app.state.anthropic = (
        anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        if settings.anthropic_api_key
        else None
    )
    if app.state.anthropic is None:
        logger.warning("ANTHROPIC_API_KEY not set, block reasoning disabled")

    yield

    if app.state.anthropic is not None:
        await app.state.anthropic.close()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Gensite Recommender API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

app.include_router(health.router)
app.include_router(sessions.router)
app.include_router(generate.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


def _error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


# Request ID injection + body size enforcement
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    # Signal payloads come from the browser collector; cap their size
    if request.url.path.startswith(SIGNALS_PATH_PREFIX) and request.method == "POST":
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.signals_request_max_bytes:
            response = _error(
                request,
                413,
                "PAYLOAD_TOO_LARGE",
                f"Request body exceeds {settings.signals_request_max_bytes} bytes.",
            )
            response.headers["X-Request-ID"] = request_id
            return response

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Rate limiting: uses lazy redis reference from lifespan
class _LazyRateLimitMiddleware(RateLimitMiddleware):
    """Rate limiter that picks up Redis client after lifespan init."""

    def __init__(self, app):
        super().__init__(app, redis_client=None)

    async def dispatch(self, request, call_next):
        self.redis = _redis_holder.get("client")
        return await super().dispatch(request, call_next)


app.add_middleware(_LazyRateLimitMiddleware)


# -- Exception Handlers --

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routers raise HTTPException(detail={"code", "message"}); plain details get a status code."""
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        return _error(request, exc.status_code, exc.detail["code"], exc.detail.get("message", ""))
    if exc.status_code == 404:
        return _error(request, 404, "NOT_FOUND", "Resource not found.")
    return _error(
        request,
        exc.status_code,
        _ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        str(exc.detail),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid')}" if location else "Validation error."
    return _error(request, 422, "VALIDATION_ERROR", message)


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return _error(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
