"""
RPC server.

Consumes requests from a Redis list, dispatches each one as its own task
and pushes the reply to the request's reply key with a TTL.
"""

import asyncio
from typing import Any

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from mlm_rpc.middlewares.error_handler import RpcFailure
from mlm_rpc.router import CommandRouter
from mlm_tree.utils.rpc_envelope import (
    EnvelopeError,
    RpcRequest,
    encode_failure,
    encode_success,
)


class RpcServer:
    """Redis list consumer with bounded concurrency."""

    def __init__(
        self,
        redis: Redis,
        router: CommandRouter,
        queue: str,
        max_concurrency: int,
        reply_ttl_seconds: int,
        poll_timeout_seconds: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize RPC server.

        Args:
            redis: Redis client (decode_responses=True)
            router: Router with handlers and middlewares
            queue: Request list to consume
            max_concurrency: Requests handled at the same time
            reply_ttl_seconds: Expiry of unread replies
            poll_timeout_seconds: BLPOP timeout, bounds shutdown latency
            context: Objects made available to every handler
        """
        self.redis = redis
        self.router = router
        self.queue = queue
        self.reply_ttl_seconds = reply_ttl_seconds
        self.poll_timeout_seconds = poll_timeout_seconds
        self.context = context or {}

        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._stopping = asyncio.Event()

    async def handle(self, request: RpcRequest) -> str:
        """
        Dispatch a request and encode its response.

        Returns:
            Encoded success or failure envelope
        """
        result = await self.router.dispatch(request, self.context)
        if isinstance(result, RpcFailure):
            return encode_failure(request.id, result.to_dict())
        return encode_success(request.id, result)

    async def process_raw(self, raw: str) -> None:
        """Decode, handle and reply to one raw message."""
        try:
            request = RpcRequest.decode(raw)
        except EnvelopeError as e:
            logger.warning(f"Dropping malformed request: {e}")
            return

        response = await self.handle(request)

        try:
            await self.redis.rpush(request.reply_to, response)
            await self.redis.expire(request.reply_to, self.reply_ttl_seconds)
        except RedisError as e:
            logger.error(
                f"Failed to send reply for {request.cmd}: {e}",
                extra={"request_id": request.id},
            )

    def _spawn(self, raw: str) -> None:
        task = asyncio.create_task(self.process_raw(raw))
        self._tasks.add(task)

        def _done(finished: asyncio.Task) -> None:
            self._tasks.discard(finished)
            self._semaphore.release()
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(f"Request task failed: {finished.exception()}")

        task.add_done_callback(_done)

    async def serve(self) -> None:
        """Consume requests until stop() is called."""
        logger.info(
            f"RPC server listening on {self.queue}",
            extra={"commands": self.router.commands},
        )

        while not self._stopping.is_set():
            await self._semaphore.acquire()
            try:
                item = await self.redis.blpop(
                    [self.queue], timeout=self.poll_timeout_seconds
                )
            except RedisError as e:
                self._semaphore.release()
                logger.error(f"Redis error while polling {self.queue}: {e}")
                await asyncio.sleep(1)
                continue
            except BaseException:
                self._semaphore.release()
                raise

            if item is None:
                self._semaphore.release()
                continue

            _, raw = item
            self._spawn(raw)

        await self.drain()

    def stop(self) -> None:
        """Ask serve() to return after the current poll."""
        self._stopping.set()

    async def drain(self) -> None:
        """Wait for in-flight requests to finish."""
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight requests")
            await asyncio.gather(*self._tasks, return_exceptions=True)
