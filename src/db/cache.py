import json
import logging
import time
from typing import Any, Optional

import redis

from config.settings import cache_settings

logger = logging.getLogger(__name__)

NAMESPACE = "edi:"

_redis_client: Optional[redis.Redis] = None
_retry_after = 0.0  # monotonic time before which no reconnect is attempted


def get_redis_client() -> Optional[redis.Redis]:
    """
    Returns the shared Redis client, creating it on first use. None if Redis
    is unreachable; after a failed attempt the next one waits out
    ``cache_settings.retry_backoff_seconds``.
    """
    global _redis_client, _retry_after
    if _redis_client is None:
        if time.monotonic() < _retry_after:
            return None
        try:
            logger.info(f"Attempting to connect to Redis at: {cache_settings.url}")
            client = redis.Redis.from_url(
                cache_settings.url,
                decode_responses=True,
                socket_connect_timeout=1,
                socket_timeout=2,
            )
            client.ping()
            _redis_client = client
            logger.info("Successfully connected to Redis.")
        except redis.exceptions.RedisError as e:
            _retry_after = time.monotonic() + cache_settings.retry_backoff_seconds
            logger.error(f"Could not connect to Redis, retrying in {cache_settings.retry_backoff_seconds}s: {e}")
            return None
    return _redis_client


def cache_set(key: str, value: Any, expire_seconds: Optional[int] = None) -> bool:
    """
    Sets a key-value pair in the Redis cache.

    Args:
        key: The key to set (namespace is added).
        value: The value to store.
        expire_seconds: Optional time-to-live in seconds.
    """
    client = get_redis_client()
    if client is None:
        logger.warning("Redis client not available. Cache set operation skipped.")
        return False
    try:
        client.set(f"{NAMESPACE}{key}", value, ex=expire_seconds)
        logger.debug(f"Cache set: key='{key}', expiry={expire_seconds}s")
        return True
    except redis.exceptions.RedisError as e:
        logger.error(f"Error setting cache key '{key}': {e}")
        return False


def cache_get(key: str) -> Optional[Any]:
    """
    Gets a value from the Redis cache by key.

    Returns:
        The cached value, or None if the key doesn't exist or Redis is unavailable.
    """
    client = get_redis_client()
    if client is None:
        logger.warning("Redis client not available. Cache get operation skipped.")
        return None
    try:
        value = client.get(f"{NAMESPACE}{key}")
    except redis.exceptions.RedisError as e:
        logger.error(f"Error getting cache key '{key}': {e}")
        return None
    if value is None:
        logger.debug(f"Cache miss: key='{key}'")
    else:
        logger.debug(f"Cache hit: key='{key}'")
    return value


def cache_get_json(key: str) -> Optional[Any]:
    raw = cache_get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding undecodable cache entry '{key}': {e}")
        return None


def cache_set_json(key: str, value: Any, expire_seconds: Optional[int] = None) -> bool:
    return cache_set(key, json.dumps(value), expire_seconds=expire_seconds)
