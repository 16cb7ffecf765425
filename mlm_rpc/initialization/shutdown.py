"""
RPC Initialization - Shutdown Module.

Module: shutdown.py
Handles graceful shutdown of the service.
Closes Redis and database connections.
"""

from loguru import logger
from redis.asyncio import Redis


async def shutdown_handler(redis_client: Redis | None = None) -> None:
    """Handle graceful shutdown."""
    logger.info("Graceful shutdown initiated...")

    if redis_client is not None:
        try:
            await redis_client.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.warning(f"Error closing Redis: {e}")

    # Close database connections
    try:
        from mlm_tree.config.database import engine
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database: {e}")

    logger.info("Graceful shutdown complete")
