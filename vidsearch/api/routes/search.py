from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sse_starlette.sse import EventSourceResponse

from vidsearch.api.deps import get_search_service
from vidsearch.models.events import SSEEvent
from vidsearch.models.schemas import SearchResponse
from vidsearch.services import logger as log_service
from vidsearch.services import streaming
from vidsearch.services.query_resolver import ParsedQuery
from vidsearch.services.search_service import SearchService

router = APIRouter(prefix="/api", tags=["search"])

TRUTHY = {"1", "true", "yes", "on"}


def wants_stream(request: Request, stream: str | None) -> bool:
    """SSE when asked for explicitly or when the client accepts event streams."""
    if stream is not None:
        return stream.strip().lower() in TRUTHY
    return "text/event-stream" in request.headers.get("accept", "").lower()


def split_engines(engines: str | None) -> list[str]:
    if not engines:
        return []
    return [name.strip() for name in engines.split(",") if name.strip()]


async def open_event_stream(service: SearchService, parsed: ParsedQuery) -> EventSourceResponse:
    """Start the search and wrap it in an SSE response.

    The first event is pulled before the response is returned, so a stream
    that cannot start raises here while the caller can still answer in batch.
    """
    events = service.stream(parsed)
    first = await events.__anext__()

    async def event_generator():
        terminal_sent = first.is_terminal
        try:
            yield first.to_sse()
            async for event in events:
                terminal_sent = terminal_sent or event.is_terminal
                yield event.to_sse()
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in search stream",
                error=str(e),
                query=parsed.text[:100],
            )
            failure: list[SSEEvent] = [streaming.error("Search stream failed unexpectedly.")]
            if not terminal_sent:
                failure.append(streaming.all_done())
            for event in failure:
                yield event.to_sse()
        finally:
            await events.aclose()

    return EventSourceResponse(event_generator())


@router.get("/search", response_model=SearchResponse)
async def search(
    request: Request,
    q: str = Query(default=""),
    page: int = Query(default=1),
    engines: str | None = Query(default=None),
    stream: str | None = Query(default=None),
    service: SearchService = Depends(get_search_service),
):
    """Search every selected engine. Streams SSE or returns one batched response."""
    parsed = service.parse(q, page=page, engines=split_engines(engines))

    if wants_stream(request, stream):
        try:
            return await open_event_stream(service, parsed)
        except Exception as e:
            log_service.log_event(
                event_type="sse_fallback",
                message="Event stream could not be set up; answering in batch",
                error=str(e),
            )

    return await service.run_batched(parsed)
