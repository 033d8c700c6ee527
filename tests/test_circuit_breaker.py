from __future__ import annotations

from vidsearch.services.circuit_breaker import (
    BreakerConfig,
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)


def _trip(breaker: CircuitBreaker, times: int = 5) -> None:
    for _ in range(times):
        breaker.record_failure()


def test_opens_after_threshold_and_recovers_through_half_open(clock):
    breaker = CircuitBreaker("pornhub", BreakerConfig(), clock=clock)

    _trip(breaker)
    assert breaker.state is CircuitState.OPEN
    assert breaker.allow_request() is False

    clock.advance(29.9)
    assert breaker.allow_request() is False
    assert 0 < breaker.retry_in() <= 0.1 + 1e-9

    clock.advance(0.2)
    assert breaker.allow_request() is True
    assert breaker.state is CircuitState.HALF_OPEN

    breaker.record_success()
    assert breaker.state is CircuitState.HALF_OPEN
    breaker.record_success()
    assert breaker.state is CircuitState.CLOSED
    assert breaker.consecutive_failures == 0


def test_failure_while_half_open_reopens_immediately(clock):
    breaker = CircuitBreaker("redtube", BreakerConfig(), clock=clock)
    _trip(breaker)
    clock.advance(30)
    assert breaker.allow_request() is True

    breaker.record_failure()

    assert breaker.state is CircuitState.OPEN
    assert breaker.allow_request() is False
    assert breaker.retry_in() == 30


def test_success_resets_consecutive_failures(clock):
    breaker = CircuitBreaker("xvideos", BreakerConfig(), clock=clock)

    _trip(breaker, 4)
    breaker.record_success()
    _trip(breaker, 4)

    assert breaker.state is CircuitState.CLOSED
    assert breaker.consecutive_failures == 4
    assert breaker.allow_request() is True


def test_custom_thresholds(clock):
    config = BreakerConfig(failure_threshold=2, success_threshold=1, cooldown_seconds=5)
    breaker = CircuitBreaker("eporner", config, clock=clock)

    _trip(breaker, 2)
    assert breaker.state is CircuitState.OPEN
    clock.advance(5)
    assert breaker.allow_request() is True
    breaker.record_success()
    assert breaker.state is CircuitState.CLOSED


def test_reset_closes_open_circuit(clock):
    breaker = CircuitBreaker("txxx", clock=clock)
    _trip(breaker)

    breaker.reset()

    assert breaker.state is CircuitState.CLOSED
    assert breaker.allow_request() is True
    assert breaker.snapshot()["consecutive_failures"] == 0


def test_registry_keeps_breakers_independent(clock):
    breakers = CircuitBreakerRegistry(BreakerConfig(failure_threshold=1), clock=clock)

    breakers.get("a").record_failure()

    assert breakers.get("a") is breakers.get("a")
    assert breakers.state_of("a") is CircuitState.OPEN
    assert breakers.state_of("b") is CircuitState.CLOSED
    assert breakers.get("b").allow_request() is True
    assert set(breakers.snapshot_all()) == {"a", "b"}


def test_registry_configure_updates_existing_breakers(clock):
    breakers = CircuitBreakerRegistry(clock=clock)
    breaker = breakers.get("a")

    breakers.configure(BreakerConfig(failure_threshold=1))
    breaker.record_failure()

    assert breaker.state is CircuitState.OPEN
    assert breakers.get("new").config.failure_threshold == 1

    breakers.reset_all()
    assert breaker.state is CircuitState.CLOSED
