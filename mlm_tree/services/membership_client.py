"""
Membership client.

Batch lookup of active memberships in the membership service. Lookups are
advisory: any failure is absorbed and reported as "no active membership".
"""

from collections.abc import Iterable
from typing import Any

from loguru import logger
from redis.exceptions import RedisError

from mlm_tree.config.settings import settings
from mlm_tree.services.rpc_client import RpcCallError, RpcClient
from mlm_tree.utils.rpc_envelope import EnvelopeError


CHECK_ACTIVE_MEMBERSHIP_CMD = "membership.checkUserActiveMembership"


class MembershipClient:
    """Client for the membership service."""

    def __init__(
        self,
        rpc: RpcClient,
        timeout: float | None = None,
        log: Any = None,
    ) -> None:
        """
        Initialize membership client.

        Args:
            rpc: RPC client bound to the membership queue
            timeout: Reply timeout in seconds (defaults to settings)
            log: loguru-compatible logger
        """
        self.rpc = rpc
        self.timeout = timeout or settings.membership_timeout_seconds
        self.logger = (log if log is not None else logger).bind(
            service=self.__class__.__name__
        )

    async def check_active_memberships(
        self, user_ids: Iterable[str]
    ) -> dict[str, bool]:
        """
        Check which users hold an active membership.

        Args:
            user_ids: User IDs to check

        Returns:
            Mapping of every requested id to its membership flag;
            all False if the membership service fails or times out
        """
        ids = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        flags = dict.fromkeys(ids, False)
        if not ids:
            return flags

        try:
            response = await self.rpc.send(
                CHECK_ACTIVE_MEMBERSHIP_CMD,
                {"users": [{"userId": user_id} for user_id in ids]},
                timeout=self.timeout,
            )
        except (RpcCallError, EnvelopeError, RedisError, OSError) as e:
            self.logger.warning(
                f"Membership lookup failed, treating as inactive: {e}",
                extra={"users": len(ids)},
            )
            return flags

        results = response.get("results") if isinstance(response, dict) else None
        for result in results or []:
            if not isinstance(result, dict):
                continue
            user_id = str(result.get("userId", ""))
            if user_id in flags:
                flags[user_id] = bool(result.get("active"))

        self.logger.debug(
            "Membership lookup completed",
            extra={"users": len(ids), "active": sum(flags.values())},
        )
        return flags
