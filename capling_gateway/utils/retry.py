"""Retry and timeout helpers for awaited operations"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from capling_gateway.domain.exceptions import OperationTimeoutError, is_retryable

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    delay: float = 1.0,
) -> T:
    """
    Run an idempotent async operation, retrying retryable failures.

    Retry strategy:
    - Only CaplingError with status >= 500 is retried
    - Linear backoff: delay, 2*delay, 3*delay, ...
    - The last failure is re-raised unchanged
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as e:
            if not is_retryable(e) or attempt >= max_attempts:
                raise

            logger.info(
                f"Retry attempt {attempt}/{max_attempts}",
                extra={"step": "retry", "attempt": attempt, "error": str(e)},
            )
            await asyncio.sleep(delay * attempt)
            attempt += 1


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    message: str = "Operation timed out",
) -> T:
    """Race an awaitable against a deadline"""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(message) from e
