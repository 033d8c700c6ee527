from __future__ import annotations

from vidsearch.models.events import ALL_ENGINES, EventType, SSEEvent
from vidsearch.models.schemas import ResultItem


def result(item: ResultItem) -> SSEEvent:
    """One surviving result, flat on the wire."""
    return SSEEvent(event=EventType.RESULT, data=item.model_dump())


def engine_done(engine: str, *, results: int = 0, skipped: bool = False) -> SSEEvent:
    data = {"done": True, "engine": engine, "results": results}
    if skipped:
        data["skipped"] = True
    return SSEEvent(event=EventType.ENGINE_DONE, data=data)


def engine_error(engine: str, message: str) -> SSEEvent:
    return SSEEvent(event=EventType.ERROR, data={"error": message, "engine": engine})


def all_done(
    *,
    engines_used: list[str] | None = None,
    engines_failed: list[str] | None = None,
    results: int = 0,
    search_time_ms: int | None = None,
) -> SSEEvent:
    data: dict = {"done": True, "engine": ALL_ENGINES, "results": results}
    if engines_used is not None:
        data["engines_used"] = engines_used
    if engines_failed is not None:
        data["engines_failed"] = engines_failed
    if search_time_ms is not None:
        data["search_time_ms"] = search_time_ms
    return SSEEvent(event=EventType.DONE, data=data)


def error(message: str, engine: str | None = None) -> SSEEvent:
    data: dict = {"error": message}
    if engine:
        data["engine"] = engine
    return SSEEvent(event=EventType.ERROR, data=data)
