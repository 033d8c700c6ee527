from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

import httpx

from vidsearch.config import Settings
from vidsearch.errors import EngineError
from vidsearch.services.logger import logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay: float = 0.1
    max_delay: float = 2.0
    multiplier: float = 2.0
    jitter: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            initial_delay=settings.retry_initial_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            multiplier=settings.retry_multiplier,
            jitter=settings.retry_jitter,
        )

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay after the given (1-based) failed attempt."""
        if attempt <= 0:
            return self.initial_delay
        return min(self.initial_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        base = self.base_delay(attempt)
        if self.jitter <= 0:
            return base
        # rand() in [0, 1) maps to [-jitter, +jitter]
        return max(0.0, base + base * self.jitter * (rand() * 2 - 1))


def is_transient(exc: BaseException) -> bool:
    """Classify an engine error as worth retrying."""
    if isinstance(exc, EngineError):
        return exc.transient
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status == 429
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    return False


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str = "",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_attempt: Callable[[int], None] | None = None,
) -> T:
    """Run `fn`, retrying transient failures with exponential backoff.

    Permanent errors and the final transient error propagate unchanged.
    Cancellation is never caught, so a cancelled caller stops retrying
    immediately, including while waiting between attempts.
    """
    attempt = 0
    while True:
        attempt += 1
        if on_attempt is not None:
            on_attempt(attempt)
        try:
            return await fn()
        except Exception as exc:
            if not is_transient(exc) or attempt >= policy.max_attempts:
                raise
            wait = policy.delay(attempt)
            logger.debug(
                f"[RETRY] {label or 'call'} attempt {attempt}/{policy.max_attempts} "
                f"failed ({type(exc).__name__}: {exc}); retrying in {wait:.3f}s"
            )
            await sleep(wait)
