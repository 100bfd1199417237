"""Bounded retry helper for idempotent network operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float = 0.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Sleep = asyncio.sleep,
    description: str = "operation",
) -> T:
    """Await ``operation`` up to ``attempts`` times and return its result.

    Only exceptions listed in ``retry_on`` trigger another attempt; the last one
    is re-raised once the budget is spent.
    """

    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def log_failure(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s failed (attempt %s/%s): %s",
            description,
            state.attempt_number,
            attempts,
            error,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(retry_on),
        sleep=sleep,
        before_sleep=log_failure,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
    raise AssertionError("retry loop ended without an outcome")  # pragma: no cover


__all__ = ["retry_async"]
