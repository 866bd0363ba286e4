"""
Rate limiting middleware.

Fixed one-minute windows counted in Redis, keyed by user (from the bearer
token) or client IP, per endpoint bucket. Endpoints that call the LLM get
their own, tighter buckets. With Redis down every request is allowed.
"""
import logging
import re
import time
from typing import List, NamedTuple, Optional, Pattern, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from core.cache import get_redis_client
from core.config import settings
from core.security import user_id_from_token

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/health/detailed", "/ping", "/docs", "/openapi.json", "/redoc"})


class LimitRule(NamedTuple):
    method: str
    pattern: Pattern
    limit: int
    bucket: str


# LLM-backed endpoints: client role-play, evaluation, plan generation
ENDPOINT_RULES: List[LimitRule] = [
    LimitRule("POST", re.compile(r"^/v1/simulations/\d+/messages$"), 10, "simulation_message"),
    LimitRule("POST", re.compile(r"^/v1/simulations/\d+/complete$"), 5, "simulation_complete"),
    LimitRule("POST", re.compile(r"^/v1/coaching/plan$"), 5, "coaching_plan"),
]


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, default_limit: Optional[int] = None, window: int = 60):
        super().__init__(app)
        self.default_limit = default_limit or settings.RATE_LIMIT_PER_MINUTE
        self.window = window
        self.rules = list(ENDPOINT_RULES)

    async def dispatch(self, request: Request, call_next):
        if not settings.RATE_LIMIT_ENABLED or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_key = self.client_key(request)
        limit, bucket = self.limit_for(request.method, request.url.path)
        allowed, remaining, reset_at = self.hit(f"rate_limit:{client_key}:{bucket}", limit)

        if not allowed:
            logger.info(
                f"Rate limit exceeded for {client_key} on {bucket}",
                extra={"extra_fields": {"bucket": bucket, "limit": limit}},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Rate limit exceeded",
                    "limit": limit,
                    "window": self.window,
                    "reset_at": reset_at,
                },
                headers={
                    **self._headers(limit, 0, reset_at),
                    "Retry-After": str(max(0, reset_at - int(time.time()))),
                },
            )

        response = await call_next(request)
        response.headers.update(self._headers(limit, remaining, reset_at))
        return response

    @staticmethod
    def _headers(limit: int, remaining: int, reset_at: int) -> dict:
        return {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_at),
        }

    @staticmethod
    def client_key(request: Request) -> str:
        """`user:<id>` for a valid bearer token, else `ip:<address>`."""
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            user_id = user_id_from_token(auth_header.split(" ", 1)[1])
            if user_id is not None:
                return f"user:{user_id}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def limit_for(self, method: str, path: str) -> Tuple[int, str]:
        """(limit, bucket) of the first matching rule, else the default bucket."""
        for rule in self.rules:
            if rule.method == method and rule.pattern.match(path):
                return rule.limit, rule.bucket
        return self.default_limit, "default"

    def hit(self, key: str, limit: int) -> Tuple[bool, int, int]:
        """Count one request. Returns (allowed, remaining, reset_at epoch seconds)."""
        now = int(time.time())
        redis_client = get_redis_client()
        if not redis_client:
            return True, limit, now + self.window

        try:
            count = redis_client.incr(key)
            ttl = redis_client.ttl(key)
            # first hit, or a counter left without a TTL by an interrupted request
            if ttl < 0:
                redis_client.expire(key, self.window)
                ttl = self.window
        except (RedisError, ConnectionError, TimeoutError) as e:
            logger.error(f"Rate limit check failed, allowing request: {e}")
            return True, limit, now + self.window

        reset_at = now + (ttl if ttl > 0 else self.window)
        if count > limit:
            return False, 0, reset_at
        return True, max(0, limit - count), reset_at
