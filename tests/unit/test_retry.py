"""Unit tests for retry and timeout helpers"""

import asyncio
import pytest
from unittest.mock import AsyncMock, patch
from capling_gateway.domain.exceptions import (
    DatabaseError,
    ExternalServiceError,
    OperationTimeoutError,
    ValidationError,
    is_retryable,
)
from capling_gateway.utils.retry import with_retry, with_timeout


def test_is_retryable():
    """Test that only server-side failures are retryable"""
    assert is_retryable(ExternalServiceError("Reasoner", "down"))
    assert is_retryable(DatabaseError("boom"))
    assert not is_retryable(ValidationError("bad", "amount"))
    assert not is_retryable(OperationTimeoutError())
    assert not is_retryable(RuntimeError("boom"))


async def test_retries_until_success():
    operation = AsyncMock(side_effect=[ExternalServiceError("Reasoner", "down"), "ok"])

    result = await with_retry(operation, max_attempts=3, delay=0)

    assert result == "ok"
    assert operation.await_count == 2


async def test_non_retryable_error_raised_immediately():
    operation = AsyncMock(side_effect=ValidationError("bad", "amount"))

    with pytest.raises(ValidationError):
        await with_retry(operation, max_attempts=3, delay=0)
    assert operation.await_count == 1


async def test_gives_up_after_max_attempts():
    operation = AsyncMock(side_effect=ExternalServiceError("Reasoner", "down"))

    with pytest.raises(ExternalServiceError):
        await with_retry(operation, max_attempts=3, delay=0)
    assert operation.await_count == 3


@patch("capling_gateway.utils.retry.asyncio.sleep", new_callable=AsyncMock)
async def test_linear_backoff(mock_sleep: AsyncMock):
    """Test delays of delay*attempt between attempts"""
    operation = AsyncMock(side_effect=ExternalServiceError("Reasoner", "down"))

    with pytest.raises(ExternalServiceError):
        await with_retry(operation, max_attempts=3, delay=1.0)

    assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]


async def test_with_timeout_passes_result_through():
    async def quick():
        return 42

    assert await with_timeout(quick(), 1.0) == 42


async def test_with_timeout_raises_timeout_error():
    with pytest.raises(OperationTimeoutError) as exc_info:
        await with_timeout(asyncio.sleep(1), 0.01, "too slow")
    assert exc_info.value.status_code == 408
    assert exc_info.value.message == "too slow"
