"""
Redis Caching Layer

Read-through cache for derived adaptation profiles, keyed by
(athlete_id, adaptation_type). Entries are invalidated explicitly when
new activity data is ingested or a learning pass overwrites a profile.
Degrades gracefully to direct storage reads if Redis is unavailable.
"""
import json
import logging
from typing import Optional, Any
import redis
from redis.exceptions import ConnectionError, TimeoutError, RedisError
from core.config import settings

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "env_profile"

# Redis connection pool (singleton)
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client with connection pooling. Returns None if Redis unavailable."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30
        )
        _redis_client.ping()
        logger.info("Redis connection established")
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}. Caching disabled.")
        _redis_client = None
        return None


def cache_key(prefix: str, *args, **kwargs) -> str:
    """Generate cache key from prefix and arguments."""
    key_parts = [prefix]

    for arg in args:
        if arg is not None:
            key_parts.append(str(arg))

    for k, v in sorted(kwargs.items()):
        if v is not None:
            key_parts.append(f"{k}:{v}")

    return ":".join(key_parts)


def profile_cache_key(athlete_id: Any, adaptation_type: str) -> str:
    return cache_key(PROFILE_PREFIX, athlete_id, adaptation_type)


def get_cache(key: str) -> Optional[Any]:
    """Get value from cache. Returns None if not found or Redis unavailable."""
    client = get_redis_client()
    if not client:
        return None

    try:
        value = client.get(key)
        if value:
            return json.loads(value)
        return None
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache get error for key {key}: {e}")
        return None


def set_cache(key: str, value: Any, ttl: int = None) -> bool:
    """Set value in cache. Returns True if successful, False otherwise."""
    client = get_redis_client()
    if not client:
        return False

    try:
        if ttl is None:
            ttl = settings.CACHE_TTL_DEFAULT

        client.setex(
            key,
            ttl,
            json.dumps(value, default=str)  # default=str handles datetime, UUID, etc.
        )
        return True
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache set error for key {key}: {e}")
        return False


def delete_cache(*keys: str) -> int:
    """Delete keys from cache. Returns the number of keys removed."""
    client = get_redis_client()
    if not client or not keys:
        return 0

    try:
        return client.delete(*keys) or 0
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Cache delete error for keys {keys}: {e}")
        return 0


def invalidate_profile_cache(athlete_id: Any, adaptation_types=None) -> int:
    """
    Drop cached adaptation profiles for an athlete.

    Args:
        athlete_id: Athlete whose entries should go
        adaptation_types: Iterable of type names; None means every type
    """
    if adaptation_types is None:
        from services.environmental_profiles import AdaptationType
        adaptation_types = [t.value for t in AdaptationType]

    keys = [profile_cache_key(athlete_id, t) for t in adaptation_types]
    deleted = delete_cache(*keys)
    logger.info(f"Invalidated {deleted} profile cache entries for athlete {athlete_id}")
    return deleted
