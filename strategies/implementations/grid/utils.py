"""
Utility helpers for the grid strategy.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Tuple, Type, TypeVar, Union

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from exchange_clients.base_models import ExchangeTimeoutError

T = TypeVar("T")


@dataclass
class CallResult(Generic[T]):
    """Outcome of a best-effort exchange call."""
    ok: bool
    value: Optional[T] = None
    error: Optional[Exception] = None


async def call_exchange(
    description: str,
    call: Callable[[], Awaitable[T]],
    *,
    logger,
    timeout: Optional[float] = None,
    max_attempts: int = 1,
    exception_type: Union[Type[Exception], Tuple[Type[Exception], ...]] = (Exception,),
    min_wait: float = 0.5,
    max_wait: float = 5.0,
    level: str = "ERROR",
) -> CallResult[T]:
    """
    Run an exchange call under the grid's fire-and-log policy.

    Failures (exceptions or timeouts) are logged at ``level`` and returned
    as ``CallResult(ok=False)``; they never propagate. ``max_attempts`` above
    1 retries with exponential backoff; the default of 1 makes exactly one
    attempt.

    Args:
        description: Human readable action, used in the failure log line
        call: Zero-argument coroutine factory (called once per attempt)
        logger: UnifiedLogger-compatible logger
        timeout: Per-attempt time budget in seconds; None waits indefinitely
        exception_type: Exception types that trigger another attempt; anything
            else fails the call immediately
    """

    async def _attempt() -> T:
        if timeout is None:
            return await call()
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ExchangeTimeoutError(f"{description} timed out after {timeout}s") from exc

    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, max_attempts)),
            wait=wait_exponential(multiplier=min_wait, max=max_wait),
            retry=retry_if_exception_type(exception_type),
            reraise=True,
        ):
            with attempt:
                value = await _attempt()
    except Exception as exc:
        logger.log(f"Grid: {description} failed: {exc}", level)
        return CallResult(ok=False, error=exc)

    return CallResult(ok=True, value=value)
