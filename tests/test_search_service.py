from __future__ import annotations

import pytest

from conftest import FakeEngine, make_item, no_sleep
from vidsearch.config import Settings
from vidsearch.errors import EngineParseError, EmptyQueryError
from vidsearch.services.circuit_breaker import CircuitBreakerRegistry
from vidsearch.services.registry import EngineRegistry
from vidsearch.services.resilience import ResilienceWrapper
from vidsearch.services.retry import RetryPolicy
from vidsearch.services.search_service import SearchOptions, SearchService


def _service(engines, clock, **options):
    registry = EngineRegistry(engines)
    breakers = CircuitBreakerRegistry(clock=clock)
    opts = SearchOptions(retry=RetryPolicy(max_attempts=1), **options)
    resilience = ResilienceWrapper(breakers, opts.retry, sleep=no_sleep)
    return SearchService(registry, breakers, opts, resilience=resilience)


def _engines():
    return [
        FakeEngine(
            "pornhub",
            [
                make_item("https://www.pornhub.com/v/1", title="One"),
                make_item("https://www.pornhub.com/v/2", title="Two", duration_seconds=20),
                make_item("https://shared.example.com/v", title="Shared"),
            ],
            bangs=("ph",),
        ),
        FakeEngine(
            "redtube",
            [
                make_item("https://www.redtube.com/3", title="Three"),
                make_item("https://shared.example.com/v/?utm_source=rt", title="Shared again"),
            ],
            bangs=("rt",),
        ),
        FakeEngine("broken", fail_with=EngineParseError("broken", "bad markup"), tier=2),
    ]


@pytest.mark.asyncio
async def test_stream_and_batched_produce_the_same_results(clock):
    service = _service(_engines(), clock, min_duration_seconds=60)
    parsed = service.parse("test")

    streamed = [event async for event in service.stream(parsed)]
    streamed_urls = {e.data["url"] for e in streamed if e.event.value == "result"}

    batched = await _service(_engines(), clock, min_duration_seconds=60).run_batched(parsed)
    batched_urls = {item.url for item in batched.data.results}

    assert streamed_urls == batched_urls
    assert len(batched_urls) == 3
    assert "https://www.pornhub.com/v/2" not in batched_urls


@pytest.mark.asyncio
async def test_stream_wire_events(clock):
    service = _service(_engines(), clock)
    events = [event async for event in service.stream(service.parse("test"))]

    names = [e.event.value for e in events]
    assert names[-1] == "done"
    assert names.count("done") == 1
    assert names.count("engine_done") == 3
    assert events[-1].data["engine"] == "all"
    assert events[-1].data["done"] is True

    error = next(e for e in events if e.event.value == "error")
    assert error.data == {"error": "Failed to parse broken response: bad markup", "engine": "broken"}

    result = next(e for e in events if e.event.value == "result")
    for key in ("title", "url", "thumbnail", "duration_seconds", "source"):
        assert key in result.data

    # The engine's error is reported before its completion marker.
    broken_done = next(
        i for i, e in enumerate(events) if e.event.value == "engine_done" and e.data["engine"] == "broken"
    )
    assert names.index("error") < broken_done


@pytest.mark.asyncio
async def test_batched_response_shape(clock):
    service = _service(_engines(), clock, results_per_page=2)
    response = await service.run_batched(service.parse("!ph !rt test", page=2))

    assert response.ok is True
    data = response.data
    assert data.query == "!ph !rt test"
    assert data.search_query == "test"
    assert data.has_bang is True
    assert data.bang_engines == ["pornhub", "redtube"]
    assert sorted(data.engines_used) == ["pornhub", "redtube"]
    assert data.engines_failed == []
    assert len(data.results) == 4
    assert response.pagination.model_dump() == {"page": 2, "limit": 2, "total": 4, "pages": 2}


@pytest.mark.asyncio
async def test_total_failure_is_still_a_successful_response(clock):
    engines = [FakeEngine("a", fail_with=EngineParseError("a", "x")), FakeEngine("b", fail_with=EngineParseError("b", "y"))]
    service = _service(engines, clock)

    response = await service.run_batched(service.parse("test"))

    assert response.ok is True
    assert response.data.results == []
    assert sorted(response.data.engines_failed) == ["a", "b"]
    assert response.pagination.pages == 0


@pytest.mark.asyncio
async def test_batched_deadline_returns_partial_results(clock):
    engines = [
        FakeEngine("fast", [make_item("https://example.com/1")]),
        FakeEngine("slow", [make_item("https://example.com/2")], delay=10),
    ]
    service = _service(engines, clock, request_timeout=0.2, engine_timeout=None)

    response = await service.run_batched(service.parse("test"))

    assert [item.url for item in response.data.results] == ["https://example.com/1"]
    assert response.data.engines_used == ["fast"]
    assert response.data.engines_failed == ["slow"]
    assert response.data.search_time_ms >= 150


def test_parse_clamps_page_and_rejects_empty(clock):
    service = _service(_engines(), clock, max_page=3)

    assert service.parse("test", page=99).page == 3
    with pytest.raises(EmptyQueryError):
        service.parse("   ")


def test_options_follow_settings():
    settings = Settings(
        search_concurrency_limit=3,
        search_min_duration_seconds=120,
        retry_max_attempts=5,
        search_unknown_bang_mode="error",
    )

    options = SearchOptions.from_settings(settings)

    assert options.concurrency_limit == 3
    assert options.filters.min_duration_seconds == 120
    assert options.retry.max_attempts == 5
    assert options.unknown_bang_mode == "error"
