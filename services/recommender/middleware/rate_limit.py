"""
Redis-backed sliding window rate limiter.

Tiers:
  - /generate (reasoning call per request): settings.rate_limit_llm_per_min
  - /sessions/... signal ingestion: settings.rate_limit_signals_per_min
  - everything else: settings.rate_limit_anon_per_min

Keyed per session when the path carries one, else per client IP.
No Redis means no limiting: requests pass through.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from services.recommender.config import settings

LLM_PREFIXES = ("/generate",)
SIGNALS_PREFIX = "/sessions/"
WINDOW_S = 60.0


def _get_rate_limit(path: str) -> tuple[int, str]:
    """Return (limit_per_min, tier_name) for the given path."""
    for prefix in LLM_PREFIXES:
        if path.startswith(prefix):
            return settings.rate_limit_llm_per_min, "llm"
    if path.startswith(SIGNALS_PREFIX):
        return settings.rate_limit_signals_per_min, "signals"
    return settings.rate_limit_anon_per_min, "anon"


def _get_client_key(request: Request) -> str:
    """Session id from /sessions/{id}/... paths, otherwise the client IP."""
    path = request.url.path
    if path.startswith(SIGNALS_PREFIX):
        session_id = path[len(SIGNALS_PREFIX):].split("/", 1)[0]
        if session_id:
            return f"session:{session_id}"
    client_ip = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    return f"ip:{client_ip}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding window rate limiter backed by Redis sorted sets."""

    def __init__(self, app, redis_client=None):
        super().__init__(app)
        self.redis = redis_client

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/health" or self.redis is None:
            return await call_next(request)

        limit, tier = _get_rate_limit(request.url.path)
        window_key = f"ratelimit:{tier}:{_get_client_key(request)}"

        now = time.time()
        window_start = now - WINDOW_S

        pipe = self.redis.pipeline()
        pipe.zremrangebyscore(window_key, 0, window_start)
        pipe.zcard(window_key)
        pipe.zadd(window_key, {f"{now}:{id(request)}": now})
        pipe.expire(window_key, int(WINDOW_S * 2))
        results = await pipe.execute()

        current_count = results[1]

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(max(0, limit - current_count - 1)),
            "X-RateLimit-Reset": str(int(now + WINDOW_S)),
        }

        if current_count >= limit:
            headers["Retry-After"] = str(int(WINDOW_S))
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": {
                        "code": "RATE_LIMITED",
                        "message": f"Rate limit exceeded. Max {limit} requests per minute for {tier} tier.",
                    },
                    "requestId": getattr(request.state, "request_id", None)
                    or request.headers.get("x-request-id", ""),
                },
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
