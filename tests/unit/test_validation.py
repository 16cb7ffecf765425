"""Unit tests for input validation, error types and timeouts."""

import asyncio
import uuid

import pytest

from mlm_tree.models.enums import Side
from mlm_tree.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    StorageTimeoutError,
    is_caller_error,
)
from mlm_tree.utils.timeouts import bounded
from mlm_tree.utils.validation import (
    normalize_referral_code,
    parse_node_id,
    parse_side,
    require_node_id,
)


class TestNodeIds:

    def test_parse_valid(self):
        node_id = uuid.uuid4()

        assert parse_node_id(node_id) is node_id
        assert parse_node_id(f" {node_id} ") == node_id

    @pytest.mark.parametrize("value", [None, "", "xyz", 42, "1234"])
    def test_parse_invalid(self, value):
        assert parse_node_id(value) is None

    def test_require_raises(self):
        with pytest.raises(InvalidArgumentError, match="user id"):
            require_node_id("bad", "user id")


class TestParseSide:

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, Side.LEFT),
            ("left", Side.LEFT),
            (" RIGHT ", Side.RIGHT),
            (Side.RIGHT, Side.RIGHT),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_side(value) is expected

    @pytest.mark.parametrize("value", ["", "up", 1])
    def test_invalid(self, value):
        with pytest.raises(InvalidArgumentError):
            parse_side(value)

    def test_opposite(self):
        assert Side.LEFT.opposite() is Side.RIGHT
        assert Side.RIGHT.opposite() is Side.LEFT


class TestReferralCode:

    def test_normalized_upper(self):
        assert normalize_referral_code(" abc123 ") == "ABC123"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_rejected(self, value):
        with pytest.raises(InvalidArgumentError):
            normalize_referral_code(value)


class TestErrors:

    @pytest.mark.parametrize(
        ("error_cls", "status", "code"),
        [
            (InvalidArgumentError, 400, "INVALID_ARGUMENT"),
            (ForbiddenError, 403, "FORBIDDEN"),
            (NotFoundError, 404, "NOT_FOUND"),
            (ConflictError, 409, "CONFLICT"),
            (StorageTimeoutError, 503, "STORAGE_TIMEOUT"),
        ],
    )
    def test_payload(self, error_cls, status, code):
        error = error_cls("boom")

        assert error.to_dict() == {"status": status, "code": code, "message": "boom"}
        assert is_caller_error(error)

    def test_plain_errors_are_not_caller_errors(self):
        assert not is_caller_error(RuntimeError("x"))


class TestBounded:

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def quick():
            return 7

        assert await bounded(quick(), 1, "quick") == 7

    @pytest.mark.asyncio
    async def test_timeout_becomes_storage_timeout(self):
        with pytest.raises(StorageTimeoutError, match="slow call"):
            await bounded(asyncio.sleep(1), 0.01, "slow call")

    @pytest.mark.asyncio
    async def test_custom_error_type(self):
        with pytest.raises(ConflictError):
            await bounded(asyncio.sleep(1), 0.01, "claim", error_cls=ConflictError)
