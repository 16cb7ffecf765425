"""Unit tests for the RPC client and the membership client."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from mlm_tree.services.membership_client import (
    CHECK_ACTIVE_MEMBERSHIP_CMD,
    MembershipClient,
)
from mlm_tree.services.rpc_client import RpcCallError, RpcClient


def reply(request_id: str = "x", **body) -> tuple[str, str]:
    return ("rpc:reply:x", json.dumps({"id": request_id, **body}))


class TestRpcClient:
    """Request/reply over Redis lists."""

    @pytest.mark.asyncio
    async def test_sends_envelope_and_returns_data(self, mock_redis_client):
        mock_redis_client.blpop.return_value = reply(ok=True, data={"a": 1})
        client = RpcClient(mock_redis_client, "rpc:membership")

        result = await client.send("membership.ping", {"q": 1}, timeout=2)

        assert result == {"a": 1}
        queue, raw = mock_redis_client.rpush.await_args.args
        sent = json.loads(raw)
        assert queue == "rpc:membership"
        assert sent["cmd"] == "membership.ping"
        assert sent["data"] == {"q": 1}
        assert sent["reply_to"] == f"rpc:reply:{sent['id']}"
        keys = mock_redis_client.blpop.await_args.args[0]
        assert keys == [sent["reply_to"]]

    @pytest.mark.asyncio
    async def test_error_reply_raises(self, mock_redis_client):
        mock_redis_client.blpop.return_value = reply(
            ok=False, error={"status": 404, "message": "nope"}
        )
        client = RpcClient(mock_redis_client, "rpc:membership")

        with pytest.raises(RpcCallError) as exc_info:
            await client.send("membership.ping", {}, timeout=1)

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_no_reply_raises(self, mock_redis_client):
        mock_redis_client.blpop.return_value = None
        client = RpcClient(mock_redis_client, "rpc:membership")

        with pytest.raises(RpcCallError) as exc_info:
            await client.send("membership.ping", {}, timeout=0.2)

        assert exc_info.value.status == 504
        # Timeout rounded up to whole seconds
        assert mock_redis_client.blpop.await_args.kwargs["timeout"] == 1

    @pytest.mark.asyncio
    async def test_stalled_push_times_out(self, mock_redis_client):
        async def stall(*args, **kwargs):
            await asyncio.sleep(5)

        mock_redis_client.rpush.side_effect = stall
        client = RpcClient(mock_redis_client, "rpc:membership")

        with pytest.raises(RpcCallError) as exc_info:
            await client.send("membership.ping", {}, timeout=0.05)

        assert exc_info.value.status == 504
        mock_redis_client.blpop.assert_not_awaited()


class TestMembershipClient:
    """Batch membership lookups."""

    @pytest.mark.asyncio
    async def test_maps_results_to_flags(self):
        rpc = AsyncMock()
        rpc.send.return_value = {
            "results": [
                {"userId": "u1", "active": True},
                {"userId": "u2", "active": False},
                {"userId": "stranger", "active": True},
            ]
        }
        client = MembershipClient(rpc, timeout=3)

        flags = await client.check_active_memberships(["u1", "u2", "u3", "u1"])

        assert flags == {"u1": True, "u2": False, "u3": False}
        rpc.send.assert_awaited_once_with(
            CHECK_ACTIVE_MEMBERSHIP_CMD,
            {"users": [{"userId": "u1"}, {"userId": "u2"}, {"userId": "u3"}]},
            timeout=3,
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RpcCallError("membership.checkUserActiveMembership", "no reply", 504),
            RedisConnectionError("down"),
        ],
    )
    async def test_failures_mean_no_membership(self, error):
        """Collaborator failures are absorbed as inactive."""
        rpc = AsyncMock()
        rpc.send.side_effect = error
        client = MembershipClient(rpc)

        flags = await client.check_active_memberships(["u1", "u2"])

        assert flags == {"u1": False, "u2": False}

    @pytest.mark.asyncio
    async def test_malformed_response_means_no_membership(self):
        rpc = AsyncMock()
        rpc.send.return_value = ["unexpected"]
        client = MembershipClient(rpc)

        assert await client.check_active_memberships(["u1"]) == {"u1": False}

    @pytest.mark.asyncio
    async def test_empty_input_skips_call(self):
        rpc = AsyncMock()
        client = MembershipClient(rpc)

        assert await client.check_active_memberships([]) == {}
        rpc.send.assert_not_awaited()
