"""
Redis client construction.

Redis only holds transient shopping-cart state; Postgres stays authoritative
for products. Supports a full connection URL (REDIS_URL, e.g. rediss:// for a
hosted instance) or REDIS_HOST + REDIS_PORT + REDIS_DB for a local server.
"""

import logging

import redis

from catalog.config import Settings

logger = logging.getLogger("catalog.cache")


def create_redis_client(settings: Settings) -> redis.Redis:
    """Build the Redis client shared by all in-flight requests (it is thread-safe)."""
    timeout = settings.redis_socket_timeout_seconds
    if settings.redis_url:
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )
        logger.info("Redis client created from REDIS_URL")
        return client

    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        decode_responses=True,
        socket_connect_timeout=timeout,
        socket_timeout=timeout,
    )
    logger.info("Redis client created for %s:%s db=%s",
                settings.redis_host, settings.redis_port, settings.redis_db)
    return client
