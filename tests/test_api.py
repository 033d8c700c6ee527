"""Tests for API routes."""
from __future__ import annotations

import json
from unittest.mock import patch

import pytest
import sse_starlette.sse as sse_module
from fastapi.testclient import TestClient

from conftest import FakeEngine, make_item
from vidsearch.config import Settings
from vidsearch.main import create_app
from vidsearch.services.search_service import SearchService


def _engines():
    return [
        FakeEngine(
            "pornhub",
            [
                make_item("https://www.pornhub.com/v/1", title="Long one"),
                make_item("https://www.pornhub.com/v/2", title="Short one", duration="1:00"),
            ],
            bangs=("ph",),
            display_name="PornHub",
        ),
        FakeEngine(
            "redtube",
            [make_item("https://www.redtube.com/3", title="Red three")],
            bangs=("rt",),
            display_name="RedTube",
        ),
    ]


@pytest.fixture(autouse=True)
def reset_sse_exit_event():
    # EventSourceResponse caches an exit event bound to the first event loop.
    app_status = getattr(sse_module, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


def _client(**overrides):
    settings = Settings(
        retry_max_attempts=1,
        search_request_timeout_seconds=5,
        **overrides,
    )
    return TestClient(create_app(engine_list=_engines(), app_settings=settings))


@pytest.fixture
def client():
    with _client() as test_client:
        yield test_client


def _sse_events(text: str) -> list[tuple[str, dict]]:
    events = []
    event_name = None
    for line in text.splitlines():
        if line.startswith("event:"):
            event_name = line.split(":", 1)[1].strip()
        elif line.startswith("data:"):
            events.append((event_name, json.loads(line.split(":", 1)[1].strip())))
            event_name = None
    return events


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "vidsearch"
    assert data["engines"] == 2


def test_search_batched_json(client):
    response = client.get("/api/search", params={"q": "test"})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["search_query"] == "test"
    assert len(body["data"]["results"]) == 3
    assert sorted(body["data"]["engines_used"]) == ["pornhub", "redtube"]
    assert body["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}


def test_search_with_bang(client):
    body = client.get("/api/search", params={"q": "!rt test"}).json()

    assert body["data"]["has_bang"] is True
    assert {r["source"] for r in body["data"]["results"]} == {"redtube"}


def test_empty_query_is_rejected(client):
    response = client.get("/api/search", params={"q": "  "})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "EMPTY_QUERY", "message": "Query cannot be empty"}


def test_unknown_bang_error_mode():
    with _client(search_unknown_bang_mode="error") as client:
        response = client.get("/api/search", params={"q": "!zz test"})
    assert response.status_code == 400
    assert response.json()["error"] == "UNKNOWN_BANG"


def test_search_streams_when_client_accepts_sse(client):
    response = client.get(
        "/api/search",
        params={"q": "test"},
        headers={"Accept": "text/event-stream"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    events = _sse_events(response.text)
    names = [name for name, _ in events]
    assert names.count("result") == 3
    assert names.count("engine_done") == 2
    assert names[-1] == "done"
    assert events[-1][1]["engine"] == "all"

    batched = client.get("/api/search", params={"q": "test"}).json()
    streamed_urls = {data["url"] for name, data in events if name == "result"}
    assert streamed_urls == {r["url"] for r in batched["data"]["results"]}


def test_stream_query_param_overrides_accept(client):
    response = client.get(
        "/api/search",
        params={"q": "test", "stream": "0"},
        headers={"Accept": "text/event-stream"},
    )
    assert response.headers["content-type"].startswith("application/json")

    streamed = client.get("/api/search", params={"q": "test", "stream": "1"})
    assert streamed.headers["content-type"].startswith("text/event-stream")


def test_stream_that_cannot_start_falls_back_to_batched(client):
    original_stream = SearchService.stream
    calls = []

    async def unavailable():
        raise RuntimeError("event stream unavailable")
        yield

    def flaky_stream(self, parsed):
        calls.append(parsed.text)
        if len(calls) == 1:
            return unavailable()
        return original_stream(self, parsed)

    with patch.object(SearchService, "stream", flaky_stream):
        response = client.get("/api/search", params={"q": "test", "stream": "1"})

    assert response.headers["content-type"].startswith("application/json")
    body = response.json()
    assert body["ok"] is True
    assert len(body["data"]["results"]) == 3
    assert calls == ["test", "test"]


def test_list_engines_reports_circuit_state(client):
    runtime = client.app.state.runtime
    for _ in range(5):
        runtime.breakers.get("pornhub").record_failure()

    body = client.get("/api/engines").json()

    assert body["count"] == 2
    by_name = {engine["name"]: engine for engine in body["data"]}
    assert by_name["pornhub"]["circuit"]["state"] == "open"
    assert by_name["redtube"]["circuit"]["state"] == "closed"
    assert by_name["pornhub"]["bangs"] == ["!pornhub", "!ph"]
    assert by_name["pornhub"]["features"] == ["pagination"]


def test_open_circuit_engine_is_reported_failed(client):
    runtime = client.app.state.runtime
    for _ in range(5):
        runtime.breakers.get("pornhub").record_failure()

    body = client.get("/api/search", params={"q": "test"}).json()

    assert body["ok"] is True
    assert body["data"]["engines_failed"] == ["pornhub"]
    assert {r["source"] for r in body["data"]["results"]} == {"redtube"}


def test_admin_toggle_engine(client):
    response = client.patch("/api/admin/engines/redtube", json={"enabled": False})
    assert response.status_code == 200
    assert response.json()["data"]["enabled"] is False

    body = client.get("/api/search", params={"q": "test"}).json()
    assert body["data"]["engines_used"] == ["pornhub"]

    missing = client.patch("/api/admin/engines/nope", json={"enabled": True})
    assert missing.status_code == 404
    assert missing.json()["error"] == "UNKNOWN_ENGINE"


def test_admin_reset_circuit(client):
    runtime = client.app.state.runtime
    for _ in range(5):
        runtime.breakers.get("redtube").record_failure()

    response = client.post("/api/admin/engines/redtube/reset")

    assert response.status_code == 200
    assert response.json()["data"]["circuit"]["state"] == "closed"
    assert client.post("/api/admin/engines/nope/reset").status_code == 404


def test_admin_config_update_applies_to_next_search(client):
    response = client.patch(
        "/api/admin/config",
        json={"search_min_duration_seconds": 600, "circuit_failure_threshold": 1},
    )
    assert response.status_code == 200
    assert response.json()["data"]["search_min_duration_seconds"] == 600
    assert client.app.state.runtime.breakers.config.failure_threshold == 1

    body = client.get("/api/search", params={"q": "test"}).json()
    assert "https://www.pornhub.com/v/2" not in {r["url"] for r in body["data"]["results"]}

    invalid = client.patch("/api/admin/config", json={"retry_jitter": 5})
    assert invalid.status_code == 422


def test_admin_requires_token_when_configured():
    with _client(admin_token="secret") as client:
        denied = client.patch("/api/admin/engines/redtube", json={"enabled": False})
        allowed = client.patch(
            "/api/admin/engines/redtube",
            json={"enabled": False},
            headers={"Authorization": "Bearer secret"},
        )
        public = client.get("/api/engines")

    assert denied.status_code == 401
    assert denied.json()["error"] == "UNAUTHORIZED"
    assert allowed.status_code == 200
    assert public.status_code == 200


def test_bangs_endpoints(client):
    listing = client.get("/api/bangs").json()
    assert listing["count"] == 2
    assert listing["data"][0]["short_code"] == "!ph"

    suggestions = client.get("/api/bangs/autocomplete", params={"q": "!rt"}).json()
    assert [s["engine_name"] for s in suggestions["data"]] == ["redtube"]
