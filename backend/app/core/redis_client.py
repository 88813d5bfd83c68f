"""
Redis client for caching, task status and atomic markers
"""
import redis
from typing import Optional, Any
import json
import structlog
from app.core.config import settings

logger = structlog.get_logger()

# Key prefixes (full key = prefix + identifier)
RESUME_DEDUP_KEY_PREFIX = "resume:dedup:"  # content hash -> resume id
RESUME_TASK_KEY_PREFIX = "resume:task:"  # task id -> status JSON
RESUME_IDEMPOTENT_KEY_PREFIX = "idempotent:resume:"  # resume id -> "1"
CANDIDATE_CACHE_KEY_PREFIX = "cache:candidate:"
UPLOAD_RATE_LIMIT_KEY_PREFIX = "ratelimit:upload:batch:"

# Create Redis connection pool
redis_client = redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
    socket_connect_timeout=5,
    socket_timeout=5,
    retry_on_timeout=True,
    health_check_interval=30,
)


def get_cache(key: str) -> Optional[Any]:
    """Get value from cache"""
    try:
        value = redis_client.get(key)
        if value:
            return json.loads(value)
        return None
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None


def set_cache(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    """Set value in cache with optional TTL"""
    try:
        ttl = ttl or settings.REDIS_CACHE_TTL
        serialized = json.dumps(value, default=str)
        return bool(redis_client.setex(key, ttl, serialized))
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))
        return False


def delete_cache(key: str) -> bool:
    """Delete key from cache"""
    try:
        return bool(redis_client.delete(key))
    except Exception as e:
        logger.error("cache_delete_error", key=key, error=str(e))
        return False


def set_if_absent(key: str, value: str, ttl: int) -> bool:
    """
    Atomic SET NX EX.

    Returns True when this caller created the key. Unlike the cache helpers,
    connection errors propagate: callers rely on the answer for correctness.
    """
    return bool(redis_client.set(key, value, nx=True, ex=ttl))


def increment_with_window(key: str, window_seconds: int) -> int:
    """Increment a counter, starting its expiry window on first use"""
    count = redis_client.incr(key)
    if count == 1:
        redis_client.expire(key, window_seconds)
    return int(count)
