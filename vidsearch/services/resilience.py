from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from vidsearch.errors import CircuitOpenError, EngineTimeoutError
from vidsearch.services.circuit_breaker import CircuitBreakerRegistry, CircuitState
from vidsearch.services.retry import RetryPolicy, call_with_retry

T = TypeVar("T")


class ResilienceWrapper:
    """Circuit breaker + retry policy around a single engine call.

    Every engine call goes through `call`; nothing else talks to an engine.
    """

    def __init__(
        self,
        breakers: CircuitBreakerRegistry,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.breakers = breakers
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def is_open(self, engine_name: str) -> bool:
        """Cheap pre-check: open circuit still inside its cooldown."""
        breaker = self.breakers.get(engine_name)
        return breaker.state is CircuitState.OPEN and breaker.retry_in() > 0

    async def call(
        self,
        engine_name: str,
        fn: Callable[[], Awaitable[T]],
        *,
        timeout: float | None = None,
        policy: RetryPolicy | None = None,
        on_attempt: Callable[[int], None] | None = None,
    ) -> T:
        breaker = self.breakers.get(engine_name)
        if not breaker.allow_request():
            raise CircuitOpenError(engine_name, breaker.retry_in())

        try:
            async with asyncio.timeout(timeout or None) as deadline:
                result = await call_with_retry(
                    fn,
                    policy or self.policy,
                    label=engine_name,
                    sleep=self._sleep,
                    on_attempt=on_attempt,
                )
        except TimeoutError:
            breaker.record_failure()
            if deadline.expired():
                raise EngineTimeoutError(engine_name, timeout) from None
            # Raised by the engine itself; keep its own message.
            raise
        except Exception:
            breaker.record_failure()
            raise

        breaker.record_success()
        return result
