"""Redis client construction."""

import logging

import redis

logger = logging.getLogger(__name__)


def create_redis_client(url: str, socket_timeout: float = 5.0) -> redis.Redis:
    """Build a Redis client that returns str values.

    Connections are lazy, so an unreachable server surfaces as
    ``redis.exceptions.ConnectionError`` on first use rather than here.
    """
    logger.info("Connecting to Redis at %s", url.split("@")[-1])
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )
