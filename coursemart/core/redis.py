# ruff: noqa: PLW0603
"""Redis client for the processed-webhook markers.

Redis is optional. A marker only lets a replayed webhook skip the
fulfiller, which is idempotent on its own, so startup continues without
Redis and marker failures are logged and ignored.
"""

import redis.asyncio as redis

from coursemart.config import get_settings
from coursemart.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


async def init_redis() -> redis.Redis:
    """Open the pool and ping it.

    Raises:
        redis.ConnectionError: Server unreachable (the client is discarded)
    """
    global _redis_client

    settings = get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=settings.redis_retry_on_timeout,
        health_check_interval=settings.redis_health_check_interval,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.ConnectionError as e:
        logger.warning("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    _redis_client = client
    logger.info("redis_connected")
    return client


async def shutdown_redis() -> None:
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_disconnected")


def get_redis() -> redis.Redis | None:
    return _redis_client


# ==============================================================================
# Processed-webhook markers
# ==============================================================================


def webhook_processed_key(payment_id: str) -> str:
    return f"webhook:processed:{payment_id}"


async def is_webhook_processed(client: redis.Redis | None, payment_id: str) -> bool:
    """False when there is no client or the lookup fails."""
    if client is None:
        return False
    try:
        return bool(await client.exists(webhook_processed_key(payment_id)))
    except redis.RedisError as e:
        logger.warning("webhook_marker_lookup_failed", error=str(e))
        return False


async def mark_webhook_processed(
    client: redis.Redis | None, payment_id: str, ttl_seconds: int
) -> None:
    if client is None:
        return
    try:
        await client.set(webhook_processed_key(payment_id), "1", ex=ttl_seconds)
    except redis.RedisError as e:
        logger.warning("webhook_marker_store_failed", error=str(e))
