from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Iterable

from fastapi import Header, Request

from vidsearch.config import Settings, settings
from vidsearch.engines.base import BaseEngine
from vidsearch.errors import UnauthorizedError
from vidsearch.services.circuit_breaker import BreakerConfig, CircuitBreakerRegistry
from vidsearch.services.registry import EngineRegistry
from vidsearch.services.search_service import SearchOptions, SearchService


@dataclass
class Runtime:
    """Process-wide state shared by every request."""

    settings: Settings
    registry: EngineRegistry
    breakers: CircuitBreakerRegistry

    @classmethod
    def build(cls, engines: Iterable[BaseEngine], app_settings: Settings | None = None) -> "Runtime":
        app_settings = app_settings or settings
        registry = EngineRegistry(engines)
        registry.apply_default_engines(app_settings.default_engine_list)
        breakers = CircuitBreakerRegistry(BreakerConfig.from_settings(app_settings))
        return cls(settings=app_settings, registry=registry, breakers=breakers)

    def search_service(self) -> SearchService:
        # Options are re-read per search so config updates apply immediately.
        return SearchService(
            self.registry,
            self.breakers,
            SearchOptions.from_settings(self.settings),
        )

    def reload_breakers(self) -> None:
        self.breakers.configure(BreakerConfig.from_settings(self.settings))


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_search_service(request: Request) -> SearchService:
    return get_runtime(request).search_service()


def require_admin(request: Request, authorization: str | None = Header(default=None)) -> None:
    token = get_runtime(request).settings.admin_token
    if not token:
        return
    scheme, _, supplied = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(supplied.strip(), token):
        raise UnauthorizedError()

