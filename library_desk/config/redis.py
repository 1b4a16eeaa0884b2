"""
Redis configuration for the library desk.
Provides Redis client management and connection pooling for the
redis storage backend.
"""

from typing import Any, Dict, Optional
import time
import logging

from redis import Redis
from redis.connection import ConnectionPool

from library_desk.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

_pools: Dict[str, ConnectionPool] = {}


def get_redis_pool(settings: Optional[Settings] = None) -> ConnectionPool:
    """Get (or lazily create) the connection pool for the configured server"""
    settings = settings or get_settings()
    url = settings.get_redis_url()
    pool = _pools.get(url)
    if pool is None:
        pool = ConnectionPool(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            max_connections=settings.REDIS_POOL_SIZE,
            decode_responses=True  # Auto-decode Redis responses to strings
        )
        _pools[url] = pool
        logger.info("Created Redis connection pool for %s:%s/%s",
                    settings.REDIS_HOST, settings.REDIS_PORT, settings.REDIS_DB)
    return pool


def get_redis_client(settings: Optional[Settings] = None) -> Redis:
    """Get Redis client with connection pooling"""
    return Redis(connection_pool=get_redis_pool(settings))


def check_redis_connection(client: Redis) -> Dict[str, Any]:
    """Check Redis connection health"""
    start_time = time.time()

    try:
        is_connected = client.ping() is True
        error_message = None
    except Exception as e:
        is_connected = False
        error_message = str(e)

    return {
        "is_connected": is_connected,
        "response_time_ms": (time.time() - start_time) * 1000,
        "error": error_message,
    }
