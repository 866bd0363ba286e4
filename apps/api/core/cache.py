"""
Redis cache for read-heavy aggregates.

Two families of keys live here:
    user_stats:<user_id>        per-agent stats (GET /v1/users/.../stats)
    team_overview:<viewer_id>   supervisor dashboards

Both are dropped when one of the agent's simulations completes. Every helper
degrades to "no cache" when Redis is unreachable; callers never see a Redis
error.
"""
import json
import logging
import time
from typing import Any, Callable, Optional, TypeVar

import redis
from redis.exceptions import RedisError

from core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# After a failed connection attempt, wait this long before trying again
RECONNECT_BACKOFF_S = 30

_redis_client: Optional[redis.Redis] = None
_last_failure: float = 0.0


def get_redis_client() -> Optional[redis.Redis]:
    """Shared client, or None while Redis is unreachable."""
    global _redis_client, _last_failure

    if _redis_client is not None:
        return _redis_client
    if _last_failure and time.monotonic() - _last_failure < RECONNECT_BACKOFF_S:
        return None

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )
        client.ping()
    except RedisError as e:
        _last_failure = time.monotonic()
        logger.warning(f"Redis unavailable, caching and rate limiting disabled: {e}")
        return None

    logger.info("Connected to Redis")
    _redis_client = client
    return _redis_client


def cache_key(prefix: str, *parts: Any) -> str:
    """`prefix:part1:part2`, skipping None parts."""
    return ":".join([prefix, *(str(p) for p in parts if p is not None)])


def user_stats_key(user_id: int) -> str:
    return cache_key("user_stats", user_id)


def team_overview_key(viewer_id: int) -> str:
    return cache_key("team_overview", viewer_id)


def _with_client(action: str, key: str, fn: Callable[[redis.Redis], T], default: T) -> T:
    client = get_redis_client()
    if not client:
        return default
    try:
        return fn(client)
    except (RedisError, ConnectionError, TimeoutError) as e:
        logger.warning(f"Cache {action} failed for {key}: {e}")
        return default


def get_cache(key: str) -> Optional[Any]:
    raw = _with_client("get", key, lambda c: c.get(key), None)
    return json.loads(raw) if raw else None


def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    payload = json.dumps(value, default=str)
    ttl = ttl or settings.CACHE_TTL_DEFAULT
    return _with_client("set", key, lambda c: bool(c.setex(key, ttl, payload)), False)


def delete_cache(key: str) -> bool:
    """True when the key existed."""
    return _with_client("delete", key, lambda c: c.delete(key) > 0, False)


def invalidate_pattern(pattern: str) -> int:
    """Delete every key matching a glob pattern. Returns the number deleted."""
    def _delete_matching(client: redis.Redis) -> int:
        keys = list(client.scan_iter(match=pattern))
        return client.delete(*keys) if keys else 0

    return _with_client("invalidate", pattern, _delete_matching, 0)


def invalidate_user_cache(user_id: int) -> int:
    """
    Drop an agent's stats and every team overview.

    Overviews are keyed by viewer, and an agent can appear on several
    (direct supervisor, managers, admins), so they all go.
    """
    deleted = int(delete_cache(user_stats_key(user_id)))
    deleted += invalidate_pattern(cache_key("team_overview", "*"))
    logger.debug(f"Invalidated {deleted} cache entries after activity by user {user_id}")
    return deleted
