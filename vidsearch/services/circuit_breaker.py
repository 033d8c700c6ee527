"""Per-engine circuit breakers.

Closed -> Open after `failure_threshold` consecutive failures. Open rejects
every call until `cooldown_seconds` have passed since the last failure; the
next attempt after that moves to HalfOpen. HalfOpen lets calls through,
closes after `success_threshold` consecutive successes and reopens on any
failure.

Each breaker owns its lock. The registry lock only guards creation of new
entries, so bookkeeping for one engine never waits on another.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from vidsearch.config import Settings
from vidsearch.services.logger import logger


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True)
class BreakerConfig:
    failure_threshold: int = 5
    success_threshold: int = 2
    cooldown_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "BreakerConfig":
        return cls(
            failure_threshold=settings.circuit_failure_threshold,
            success_threshold=settings.circuit_success_threshold,
            cooldown_seconds=settings.circuit_cooldown_seconds,
        )


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        config: BreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or BreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._half_open_successes = 0
        self._last_failure_time: float | None = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def allow_request(self) -> bool:
        """Decide whether a call may be attempted right now."""
        with self._lock:
            if self._state is CircuitState.OPEN:
                if self._cooldown_remaining() > 0:
                    return False
                self._transition(CircuitState.HALF_OPEN)
            return True

    def retry_in(self) -> float:
        """Seconds until an open circuit accepts a half-open probe."""
        with self._lock:
            if self._state is not CircuitState.OPEN:
                return 0.0
            return self._cooldown_remaining()

    def record_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._half_open_successes += 1
                if self._half_open_successes >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED)
            elif self._state is CircuitState.CLOSED:
                self._consecutive_failures = 0

    def record_failure(self) -> None:
        with self._lock:
            self._last_failure_time = self._clock()
            if self._state is CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
                return

            self._consecutive_failures += 1
            if (
                self._state is CircuitState.CLOSED
                and self._consecutive_failures >= self.config.failure_threshold
            ):
                self._transition(CircuitState.OPEN)

    def reset(self) -> None:
        with self._lock:
            self._transition(CircuitState.CLOSED)
            self._last_failure_time = None

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "engine": self.name,
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "half_open_successes": self._half_open_successes,
                "retry_in_s": round(self._cooldown_remaining(), 3)
                if self._state is CircuitState.OPEN
                else 0.0,
            }

    # Lock must be held by the caller for the helpers below.

    def _cooldown_remaining(self) -> float:
        if self._last_failure_time is None:
            return 0.0
        elapsed = self._clock() - self._last_failure_time
        return max(0.0, self.config.cooldown_seconds - elapsed)

    def _transition(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        if new_state is CircuitState.CLOSED:
            self._consecutive_failures = 0
            self._half_open_successes = 0
        elif new_state is CircuitState.HALF_OPEN:
            self._half_open_successes = 0

        if old_state is new_state:
            return
        if new_state is CircuitState.OPEN:
            logger.warning(
                f"[CIRCUIT_BREAKER] {self.name} OPEN "
                f"(failures={self._consecutive_failures}, cooldown={self.config.cooldown_seconds}s)"
            )
        else:
            logger.info(f"[CIRCUIT_BREAKER] {self.name} {old_state.value} -> {new_state.value}")

    def __repr__(self) -> str:
        snap = self.snapshot()
        return (
            f"CircuitBreaker({self.name}, {snap['state']}, "
            f"failures={snap['consecutive_failures']}/{self.config.failure_threshold})"
        )


class CircuitBreakerRegistry:
    """Breakers keyed by engine name, created lazily."""

    def __init__(
        self,
        config: BreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or BreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._breakers: dict[str, CircuitBreaker] = {}

    @property
    def config(self) -> BreakerConfig:
        return self._config

    def get(self, name: str) -> CircuitBreaker:
        breaker = self._breakers.get(name)
        if breaker is not None:
            return breaker
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(name, self._config, clock=self._clock)
                self._breakers[name] = breaker
            return breaker

    def configure(self, config: BreakerConfig) -> None:
        """Apply new thresholds to existing and future breakers."""
        with self._lock:
            self._config = config
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.config = config

    def state_of(self, name: str) -> CircuitState:
        breaker = self._breakers.get(name)
        return breaker.state if breaker is not None else CircuitState.CLOSED

    def snapshot_all(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {b.name: b.snapshot() for b in breakers}

    def reset(self, name: str) -> None:
        self.get(name).reset()

    def reset_all(self) -> None:
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.reset()
