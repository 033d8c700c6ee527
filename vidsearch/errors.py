"""Structured exception hierarchy."""
from __future__ import annotations

from typing import Any, Optional


class SearchError(Exception):
    """Base class for every error raised by vidsearch."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# --- Engine errors ---


class EngineError(SearchError):
    """An engine call failed. `transient` marks errors worth retrying."""

    transient: bool = False

    def __init__(
        self,
        engine: str,
        message: str,
        error_code: str = "ENGINE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.engine = engine
        super().__init__(message, error_code, {"engine": engine, **(details or {})})


class EngineTimeoutError(EngineError):
    transient = True

    def __init__(self, engine: str, timeout_s: float | None = None):
        message = f"{engine} timed out" + (f" after {timeout_s}s" if timeout_s else "")
        super().__init__(engine, message, "ENGINE_TIMEOUT", {"timeout_s": timeout_s})


class EngineNetworkError(EngineError):
    transient = True

    def __init__(self, engine: str, reason: str):
        super().__init__(engine, f"{engine} network error: {reason}", "ENGINE_NETWORK_ERROR")


class EngineServerError(EngineError):
    transient = True

    def __init__(self, engine: str, status_code: int):
        self.status_code = status_code
        super().__init__(
            engine,
            f"{engine} returned HTTP {status_code}",
            "ENGINE_SERVER_ERROR",
            {"status_code": status_code},
        )


class EngineRateLimitedError(EngineError):
    transient = True

    def __init__(self, engine: str):
        super().__init__(engine, f"{engine} rate limited the request", "ENGINE_RATE_LIMITED")


class EngineBlockedError(EngineError):
    """4xx answer or bot detection; retrying will not help."""

    def __init__(self, engine: str, status_code: int | None = None):
        self.status_code = status_code
        suffix = f" (HTTP {status_code})" if status_code else ""
        super().__init__(
            engine,
            f"Request blocked by {engine}{suffix}",
            "ENGINE_BLOCKED",
            {"status_code": status_code},
        )


class EngineParseError(EngineError):
    def __init__(self, engine: str, reason: str):
        super().__init__(engine, f"Failed to parse {engine} response: {reason}", "ENGINE_PARSE_ERROR")


class CircuitOpenError(EngineError):
    """Raised instead of calling an engine whose circuit is open."""

    def __init__(self, engine: str, retry_in_s: float = 0.0):
        self.retry_in_s = retry_in_s
        super().__init__(
            engine,
            f"Circuit open for {engine}",
            "CIRCUIT_OPEN",
            {"retry_in_s": round(retry_in_s, 3)},
        )


# --- Request-level errors ---


class InvalidQueryError(SearchError):
    def __init__(self, reason: str, error_code: str = "INVALID_QUERY", details: Optional[dict[str, Any]] = None):
        super().__init__(reason, error_code, details)


class EmptyQueryError(InvalidQueryError):
    def __init__(self, reason: str = "Query cannot be empty"):
        super().__init__(reason, "EMPTY_QUERY")


class UnknownBangError(InvalidQueryError):
    def __init__(self, bangs: list[str]):
        self.bangs = bangs
        super().__init__(
            f"Unknown bang: {', '.join(bangs)}",
            "UNKNOWN_BANG",
            {"bangs": bangs},
        )


class UnknownEngineError(SearchError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown engine: {name}", "UNKNOWN_ENGINE", {"engine": name})


class UnauthorizedError(SearchError):
    def __init__(self, message: str = "Admin token required"):
        super().__init__(message, "UNAUTHORIZED")
