from __future__ import annotations

import asyncio

import pytest

from conftest import no_sleep
from vidsearch.errors import CircuitOpenError, EngineParseError, EngineTimeoutError
from vidsearch.services.circuit_breaker import BreakerConfig, CircuitBreakerRegistry, CircuitState
from vidsearch.services.resilience import ResilienceWrapper
from vidsearch.services.retry import RetryPolicy


def _wrapper(clock, failure_threshold=5):
    breakers = CircuitBreakerRegistry(
        BreakerConfig(failure_threshold=failure_threshold), clock=clock
    )
    return ResilienceWrapper(breakers, RetryPolicy(max_attempts=3), sleep=no_sleep)


@pytest.mark.asyncio
async def test_success_after_retries_records_one_success(clock):
    wrapper = _wrapper(clock)
    calls = 0

    async def fn():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise EngineTimeoutError("ph")
        return ["item"]

    assert await wrapper.call("ph", fn) == ["item"]
    assert calls == 3
    assert wrapper.breakers.get("ph").consecutive_failures == 0


@pytest.mark.asyncio
async def test_exhausted_call_counts_as_one_breaker_failure(clock):
    wrapper = _wrapper(clock)

    async def fn():
        raise EngineTimeoutError("ph")

    with pytest.raises(EngineTimeoutError):
        await wrapper.call("ph", fn)

    assert wrapper.breakers.get("ph").consecutive_failures == 1


@pytest.mark.asyncio
async def test_open_circuit_refuses_without_calling(clock):
    wrapper = _wrapper(clock, failure_threshold=1)
    calls = 0

    async def fn():
        nonlocal calls
        calls += 1
        raise EngineParseError("ph", "bad")

    with pytest.raises(EngineParseError):
        await wrapper.call("ph", fn)
    assert wrapper.is_open("ph")

    with pytest.raises(CircuitOpenError) as exc_info:
        await wrapper.call("ph", fn)

    assert calls == 1
    assert exc_info.value.retry_in_s == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_timeout_is_recorded_as_failure(clock):
    wrapper = _wrapper(clock, failure_threshold=1)

    async def slow():
        await asyncio.sleep(5)

    with pytest.raises(EngineTimeoutError):
        await wrapper.call("slow", slow, timeout=0.01)

    assert wrapper.breakers.state_of("slow") is CircuitState.OPEN


@pytest.mark.asyncio
async def test_engine_raised_timeout_keeps_its_own_message(clock):
    wrapper = _wrapper(clock, failure_threshold=5)
    calls = 0

    async def stalled():
        nonlocal calls
        calls += 1
        raise TimeoutError("socket read stalled")

    with pytest.raises(TimeoutError) as exc_info:
        await wrapper.call("ph", stalled, timeout=5.0)

    assert type(exc_info.value) is TimeoutError
    assert str(exc_info.value) == "socket read stalled"
    assert calls == 3
    assert wrapper.breakers.get("ph").consecutive_failures == 1


@pytest.mark.asyncio
async def test_half_open_probe_closes_after_successes(clock):
    wrapper = _wrapper(clock, failure_threshold=1)

    async def bad():
        raise EngineParseError("ph", "bad")

    async def good():
        return []

    with pytest.raises(EngineParseError):
        await wrapper.call("ph", bad)
    clock.advance(31)

    await wrapper.call("ph", good)
    assert wrapper.breakers.state_of("ph") is CircuitState.HALF_OPEN
    await wrapper.call("ph", good)
    assert wrapper.breakers.state_of("ph") is CircuitState.CLOSED
