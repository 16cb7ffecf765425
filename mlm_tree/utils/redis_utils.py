"""Redis connection helpers for the RPC transport."""

import redis.asyncio as redis

from mlm_tree.config.settings import settings


def _redis_url(password: str | None) -> str:
    auth = f":{password}@" if password else ""
    return f"redis://{auth}{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"


def get_redis_client() -> redis.Redis:
    """
    Redis client shared by the RPC server and outgoing RPC calls.

    Replies and requests are JSON text, so responses are decoded to str.
    BLPOP blocks for up to the poll timeout; the socket timeout must
    stay above it.
    """
    return redis.Redis.from_url(
        _redis_url(settings.redis_password),
        decode_responses=True,
        socket_timeout=settings.rpc_poll_timeout_seconds + 5,
        health_check_interval=30,
    )


def get_redis_url_masked() -> str:
    """Connection URL with the password hidden, for logs."""
    return _redis_url("****" if settings.redis_password else None)
