"""Search pipeline: resolve, dispatch, aggregate, render.

`SearchService.stream` yields wire events as they happen; `run_batched`
drains the same stream into one `SearchResponse`, so both paths produce
the same result set.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import AsyncIterator, Iterable

from vidsearch.config import Settings
from vidsearch.models.events import EventType, SSEEvent
from vidsearch.models.schemas import PaginationData, ResultItem, SearchData, SearchResponse
from vidsearch.services import streaming
from vidsearch.services.aggregator import FilterOptions, ResultAggregator, SearchSession
from vidsearch.services.circuit_breaker import CircuitBreakerRegistry
from vidsearch.services.dispatcher import (
    STATUS_FAILED,
    AllDone,
    DispatchOrchestrator,
    EngineDone,
    RawResult,
)
from vidsearch.services.logger import log_search, logger
from vidsearch.services.query_resolver import ParsedQuery, resolve
from vidsearch.services.registry import EngineRegistry
from vidsearch.services.resilience import ResilienceWrapper
from vidsearch.services.retry import RetryPolicy


@dataclass(frozen=True)
class SearchOptions:
    """Point-in-time copy of the tunables one search runs with."""

    concurrency_limit: int = 10
    engine_timeout: float = 15.0
    request_timeout: float = 30.0
    results_per_page: int = 50
    max_page: int = 10
    min_duration_seconds: int = 0
    filter_premium: bool = True
    unknown_bang_mode: str = "passthrough"
    retry: RetryPolicy = RetryPolicy()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchOptions":
        return cls(
            concurrency_limit=settings.search_concurrency_limit,
            engine_timeout=settings.search_engine_timeout_seconds,
            request_timeout=settings.search_request_timeout_seconds,
            results_per_page=settings.search_results_per_page,
            max_page=settings.search_max_page,
            min_duration_seconds=settings.search_min_duration_seconds,
            filter_premium=settings.search_filter_premium,
            unknown_bang_mode=settings.search_unknown_bang_mode,
            retry=RetryPolicy.from_settings(settings),
        )

    @property
    def filters(self) -> FilterOptions:
        return FilterOptions(
            min_duration_seconds=self.min_duration_seconds,
            filter_premium=self.filter_premium,
        )


class SearchService:
    def __init__(
        self,
        registry: EngineRegistry,
        breakers: CircuitBreakerRegistry,
        options: SearchOptions | None = None,
        *,
        resilience: ResilienceWrapper | None = None,
    ) -> None:
        self.registry = registry
        self.breakers = breakers
        self.options = options or SearchOptions()
        self.resilience = resilience or ResilienceWrapper(breakers, self.options.retry)

    def parse(
        self,
        query: str,
        *,
        page: int = 1,
        engines: Iterable[str] | None = None,
    ) -> ParsedQuery:
        """Resolve the query against the current registry. Raises on bad input."""
        page = min(max(int(page or 1), 1), self.options.max_page)
        return resolve(
            query,
            self.registry.snapshot(),
            page=page,
            engines=engines,
            unknown_bang_mode=self.options.unknown_bang_mode,
        )

    async def stream(self, parsed: ParsedQuery) -> AsyncIterator[SSEEvent]:
        """Run one search and yield wire events in arrival order."""
        snapshot = self.registry.snapshot()
        engines = [entry.engine for name in parsed.engines if (entry := snapshot.get(name))]
        session = SearchSession(query=parsed, engine_set=tuple(e.name for e in engines))
        aggregator = ResultAggregator(session, self.options.filters)
        orchestrator = DispatchOrchestrator(
            self.resilience,
            concurrency_limit=self.options.concurrency_limit,
            engine_timeout=self.options.engine_timeout,
        )

        logger.info(
            f"Search '{parsed.text[:80]}' page {parsed.page} across {len(engines)} engine(s)"
        )
        events = orchestrator.dispatch(parsed.text, parsed.page, engines)
        status = "cancelled"
        try:
            async for event in events:
                if isinstance(event, RawResult):
                    item = aggregator.consume(event)
                    if item is not None:
                        yield streaming.result(item)
                elif isinstance(event, EngineDone):
                    aggregator.engine_finished(event)
                    if event.status == STATUS_FAILED:
                        yield streaming.engine_error(event.engine, event.error or "engine failed")
                    yield streaming.engine_done(
                        event.engine, results=event.results, skipped=event.skipped
                    )
                elif isinstance(event, AllDone):
                    status = "completed"
                    yield streaming.all_done(
                        engines_used=list(session.engines_used),
                        engines_failed=list(session.engines_failed),
                        results=session.results_emitted,
                        search_time_ms=session.elapsed_ms,
                    )
        finally:
            await events.aclose()
            log_search(
                parsed.text,
                list(session.engine_set),
                status,
                results=session.results_emitted,
                engines_failed=list(session.engines_failed),
                duration_ms=session.elapsed_ms,
            )

    async def run_batched(self, parsed: ParsedQuery) -> SearchResponse:
        """Drain the event stream into one batched response."""
        results: list[ResultItem] = []
        engines_used: list[str] = []
        engines_failed: list[str] = []
        search_time_ms = 0
        started = asyncio.get_running_loop().time()

        async def drain() -> None:
            nonlocal search_time_ms
            async for event in self.stream(parsed):
                data = event.data
                if event.event is EventType.RESULT:
                    results.append(ResultItem(**data))
                elif event.event is EventType.ERROR:
                    if data.get("engine") and data["engine"] not in engines_failed:
                        engines_failed.append(data["engine"])
                elif event.event is EventType.ENGINE_DONE:
                    engine = data["engine"]
                    if data.get("skipped"):
                        if engine not in engines_failed:
                            engines_failed.append(engine)
                    elif engine not in engines_failed:
                        engines_used.append(engine)
                elif event.is_terminal:
                    search_time_ms = data.get("search_time_ms", 0)

        try:
            await asyncio.wait_for(drain(), self.options.request_timeout)
        except asyncio.TimeoutError:
            # Engines still running at the deadline count as failed.
            for name in parsed.engines:
                if name not in engines_used and name not in engines_failed:
                    engines_failed.append(name)
            logger.warning(
                f"Search '{parsed.text[:80]}' hit the {self.options.request_timeout}s deadline; "
                f"returning {len(results)} partial result(s)"
            )
            search_time_ms = int((asyncio.get_running_loop().time() - started) * 1000)

        limit = self.options.results_per_page
        return SearchResponse(
            ok=True,
            data=SearchData(
                query=parsed.raw,
                search_query=parsed.text,
                results=results,
                engines_used=engines_used,
                engines_failed=engines_failed,
                search_time_ms=search_time_ms,
                has_bang=parsed.has_bang,
                bang_engines=list(parsed.bang_engines),
            ),
            pagination=PaginationData(
                page=parsed.page,
                limit=limit,
                total=len(results),
                pages=math.ceil(len(results) / limit) if limit else 0,
            ),
        )
