import asyncio

import pytest

from exchange_clients.base_models import ExchangeTimeoutError
from strategies.implementations.grid.utils import call_exchange


@pytest.mark.asyncio
async def test_call_exchange_success(recording_logger):
    async def fetch():
        return 42

    result = await call_exchange("fetch answer", fetch, logger=recording_logger)

    assert result.ok
    assert result.value == 42
    assert recording_logger.records == []


@pytest.mark.asyncio
async def test_call_exchange_logs_failure_and_does_not_raise(recording_logger):
    async def boom():
        raise RuntimeError("venue down")

    result = await call_exchange("place order", boom, logger=recording_logger)

    assert not result.ok
    assert isinstance(result.error, RuntimeError)
    assert recording_logger.messages("ERROR") == ["Grid: place order failed: venue down"]


@pytest.mark.asyncio
async def test_call_exchange_timeout(recording_logger):
    async def slow():
        await asyncio.sleep(1)

    result = await call_exchange("slow call", slow, logger=recording_logger, timeout=0.01, level="WARNING")

    assert not result.ok
    assert isinstance(result.error, ExchangeTimeoutError)
    assert recording_logger.messages("WARNING")


@pytest.mark.asyncio
async def test_call_exchange_single_attempt_by_default(recording_logger):
    calls = []

    async def flaky():
        calls.append(1)
        raise RuntimeError("nope")

    await call_exchange("flaky", flaky, logger=recording_logger)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_call_exchange_retries_when_configured(recording_logger):
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise RuntimeError("try again")
        return "ok"

    result = await call_exchange(
        "flaky",
        flaky,
        logger=recording_logger,
        max_attempts=3,
        min_wait=0.001,
        max_wait=0.001,
    )

    assert result.ok
    assert result.value == "ok"
    assert len(calls) == 3
    assert recording_logger.records == []


@pytest.mark.asyncio
async def test_call_exchange_only_retries_listed_exception_types(recording_logger):
    calls = []

    async def rejected():
        calls.append(1)
        raise ValueError("bad order")

    result = await call_exchange(
        "rejected",
        rejected,
        logger=recording_logger,
        max_attempts=3,
        exception_type=(ConnectionError,),
        min_wait=0.001,
        max_wait=0.001,
    )

    assert not result.ok
    assert isinstance(result.error, ValueError)
    assert len(calls) == 1
