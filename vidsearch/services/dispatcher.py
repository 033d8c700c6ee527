"""Concurrent fan-out of one query to many engines.

One task per engine, bounded by a semaphore, all feeding a single queue.
The consumer sees raw results in arrival order, exactly one `EngineDone`
per engine and then one `AllDone`. Closing or cancelling the consumer
cancels every engine task that is still queued or in flight.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import AsyncIterator, Sequence, Union

from vidsearch.engines.base import BaseEngine, RawItem
from vidsearch.errors import CircuitOpenError, SearchError
from vidsearch.services.logger import log_engine_call, logger
from vidsearch.services.resilience import ResilienceWrapper

STATUS_OK = "ok"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class RawResult:
    engine: str
    display_name: str
    base_url: str
    item: RawItem


@dataclass(frozen=True)
class EngineDone:
    engine: str
    status: str
    results: int = 0
    attempts: int = 0
    duration_ms: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def skipped(self) -> bool:
        return self.status == STATUS_SKIPPED


@dataclass(frozen=True)
class AllDone:
    engines: int


DispatchEvent = Union[RawResult, EngineDone, AllDone]


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, SearchError):
        return exc.message
    return str(exc) or type(exc).__name__


class DispatchOrchestrator:
    def __init__(
        self,
        resilience: ResilienceWrapper,
        *,
        concurrency_limit: int = 10,
        engine_timeout: float | None = 15.0,
    ) -> None:
        self.resilience = resilience
        self.concurrency_limit = max(int(concurrency_limit), 1)
        self.engine_timeout = engine_timeout

    async def dispatch(
        self,
        text: str,
        page: int,
        engines: Sequence[BaseEngine],
    ) -> AsyncIterator[DispatchEvent]:
        queue: asyncio.Queue[DispatchEvent] = asyncio.Queue()
        semaphore = asyncio.Semaphore(self.concurrency_limit)
        tasks = [
            asyncio.create_task(
                self._run_engine(engine, text, page, queue, semaphore),
                name=f"engine:{engine.name}",
            )
            for engine in engines
        ]

        remaining = len(tasks)
        try:
            while remaining:
                event = await queue.get()
                if isinstance(event, EngineDone):
                    remaining -= 1
                yield event
            yield AllDone(engines=len(tasks))
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.debug(f"Cancelling {len(pending)} engine task(s)")
                await asyncio.gather(*pending, return_exceptions=True)

    async def _run_engine(
        self,
        engine: BaseEngine,
        text: str,
        page: int,
        queue: asyncio.Queue,
        semaphore: asyncio.Semaphore,
    ) -> None:
        name = engine.name

        # Open circuits never take a slot.
        if self.resilience.is_open(name):
            await queue.put(EngineDone(engine=name, status=STATUS_SKIPPED, error="circuit open"))
            return

        attempts = 0
        emitted = 0

        def on_attempt(attempt: int) -> None:
            nonlocal attempts, emitted
            attempts = attempt
            emitted = 0

        async def attempt() -> int:
            nonlocal emitted
            async for item in engine.stream(text, page):
                emitted += 1
                await queue.put(
                    RawResult(
                        engine=name,
                        display_name=engine.display_name or name,
                        base_url=engine.base_url,
                        item=item,
                    )
                )
            return emitted

        async with semaphore:
            started = time.perf_counter()
            try:
                await self.resilience.call(
                    name,
                    attempt,
                    timeout=self.engine_timeout,
                    on_attempt=on_attempt,
                )
            except CircuitOpenError as exc:
                await queue.put(EngineDone(engine=name, status=STATUS_SKIPPED, error=exc.message))
                return
            except Exception as exc:
                duration_ms = int((time.perf_counter() - started) * 1000)
                message = _error_message(exc)
                log_engine_call(
                    name,
                    STATUS_FAILED,
                    duration_ms=duration_ms,
                    results=emitted,
                    attempts=attempts,
                    error=message,
                )
                await queue.put(
                    EngineDone(
                        engine=name,
                        status=STATUS_FAILED,
                        results=emitted,
                        attempts=attempts,
                        duration_ms=duration_ms,
                        error=message,
                    )
                )
                return

        duration_ms = int((time.perf_counter() - started) * 1000)
        log_engine_call(name, STATUS_OK, duration_ms=duration_ms, results=emitted, attempts=attempts)
        await queue.put(
            EngineDone(
                engine=name,
                status=STATUS_OK,
                results=emitted,
                attempts=attempts,
                duration_ms=duration_ms,
            )
        )
