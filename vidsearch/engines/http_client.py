"""Shared outbound HTTP client for engine adapters."""

from __future__ import annotations

import httpx

from vidsearch.config import settings

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

_client: httpx.AsyncClient | None = None


def build_http_client(
    *,
    timeout: float | None = None,
    proxy: str | None = None,
    user_agent: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    headers = {**DEFAULT_HEADERS, "User-Agent": user_agent or settings.http_user_agent}
    kwargs = {
        "headers": headers,
        "timeout": timeout or settings.search_engine_timeout_seconds,
        "follow_redirects": True,
        "cookies": {"age_verified": "1", "platform": "pc"},
    }
    proxy = proxy if proxy is not None else settings.http_proxy_url
    if transport is not None:
        kwargs["transport"] = transport
    elif proxy:
        kwargs["proxy"] = proxy
    return httpx.AsyncClient(**kwargs)


def get_shared_http_client() -> httpx.AsyncClient:
    """Get or create the process-wide client."""
    global _client
    if _client is None or _client.is_closed:
        _client = build_http_client()
    return _client


async def shutdown_shared_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
