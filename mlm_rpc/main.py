"""
Service main entry point.

Initializes and runs the tree service RPC server.
"""

import asyncio
import signal
import sys

from loguru import logger

from mlm_rpc.initialization.handlers import register_all_handlers
from mlm_rpc.initialization.logging import setup_logging
from mlm_rpc.initialization.middlewares import register_middlewares
from mlm_rpc.initialization.shutdown import shutdown_handler
from mlm_rpc.router import CommandRouter
from mlm_rpc.server import RpcServer
from mlm_tree.config.database import async_session_maker
from mlm_tree.config.settings import settings
from mlm_tree.services.membership_client import MembershipClient
from mlm_tree.services.rpc_client import RpcClient
from mlm_tree.utils.redis_utils import get_redis_client, get_redis_url_masked


async def main() -> None:
    """Initialize and run the RPC server."""
    setup_logging()

    router = CommandRouter()
    register_middlewares(router, async_session_maker)
    register_all_handlers(router)

    redis_client = get_redis_client()
    try:
        await redis_client.ping()
        logger.info(f"Redis connected: {get_redis_url_masked()}")
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {e}")
        await shutdown_handler(redis_client)
        raise

    membership = MembershipClient(
        RpcClient(redis_client, settings.membership_request_queue)
    )

    server = RpcServer(
        redis_client,
        router,
        queue=settings.rpc_request_queue,
        max_concurrency=settings.rpc_max_concurrency,
        reply_ttl_seconds=settings.rpc_reply_ttl_seconds,
        poll_timeout_seconds=settings.rpc_poll_timeout_seconds,
        context={"membership": membership},
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, server.stop)
        except NotImplementedError:
            # Signal handlers are unavailable on Windows event loops
            pass

    try:
        await server.serve()
    except Exception as e:
        logger.exception(f"Server error: {e}")
        raise
    finally:
        await shutdown_handler(redis_client)


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Service stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Service crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
