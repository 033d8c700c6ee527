"""Generic HTML scraping adapter.

Most tube sites render search results as a grid of cards with a link, an
image and a few labelled spans. `HTMLEngine` fetches one results page and
reads those cards with a set of common selectors; an `EngineSpec` only
names the site, its search URL and the card selector.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote_plus

import httpx
from bs4 import BeautifulSoup, Tag

from vidsearch.engines.base import BaseEngine, Feature, RawItem
from vidsearch.engines.http_client import get_shared_http_client
from vidsearch.errors import (
    EngineBlockedError,
    EngineNetworkError,
    EngineParseError,
    EngineRateLimitedError,
    EngineServerError,
    EngineTimeoutError,
)
from vidsearch.services.logger import logger

TITLE_SELECTORS = (".title", ".name", ".video-title", "h4", "h3", "span > em", "strong span")
THUMB_ATTRS = ("data-src", "data-original", "data-lazy-src", "data-thumb", "src")
PREVIEW_ATTRS = (
    "data-mediabook",
    "data-preview",
    "data-video-preview",
    "data-rollover",
    "data-preview-url",
    "data-webm",
    "data-mp4",
    "data-trailer",
    "data-teaser",
)
DURATION_SELECTORS = (
    ".duration",
    ".dur",
    ".time",
    ".length",
    ".video-duration",
    ".thumb__time",
    ".video-time",
    "time",
    "[data-duration]",
)
VIEWS_SELECTORS = (".views", ".view", ".video-views", ".thumb__views", ".view-count", ".stats")
QUALITY_SELECTORS = (".hd", ".quality", ".hd-thumbnail", ".video-hd", ".badge-hd")
PREMIUM_SELECTORS = (".premium", ".premiumIcon", ".gold", ".vip", ".paid", ".price")
PERFORMER_SELECTORS = (
    ".pornstar",
    ".model",
    ".performer",
    ".actor",
    ".actress",
    ".uploader",
    ".author",
    ".channel",
    ".studio",
    "[data-pornstar]",
    "[data-performer]",
)

_QUALITY_RE = re.compile(r"\b(4k|2160p|1440p|1080p|720p|480p|hd|uhd)\b", re.IGNORECASE)
_BOT_MARKERS = ("captcha", "cf-challenge", "are you a robot", "access denied")


@dataclass(frozen=True)
class EngineSpec:
    name: str
    display_name: str
    base_url: str
    search_path: str
    item_selector: str
    tier: int = 3
    bangs: tuple[str, ...] = ()
    capabilities: frozenset[Feature] = frozenset({Feature.PAGINATION})
    page_offset: int = 0

    def search_url(self, query: str, page: int) -> str:
        path = self.search_path.replace("{query}", quote_plus(query)).replace(
            "{page}", str(page + self.page_offset)
        )
        return self.base_url.rstrip("/") + path


def _attr(element: Tag | None, *names: str) -> str:
    if element is None:
        return ""
    for name in names:
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        if value and value.strip():
            return value.strip()
    return ""


def _text(element: Tag | None) -> str:
    if element is None:
        return ""
    return " ".join(element.get_text(" ", strip=True).split())


def _first_text(card: Tag, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        text = _text(card.select_one(selector))
        if text:
            return text
    return ""


def parse_card(card: Tag) -> RawItem | None:
    """Read one result card. Returns None when it has no link or title."""
    link = card if card.name == "a" else card.find("a", href=True)
    href = _attr(link, "href")
    if not href or href.startswith(("javascript:", "#")):
        return None

    img = card.find("img")
    title = (
        _attr(link, "title")
        or _attr(img, "alt")
        or _first_text(card, TITLE_SELECTORS)
        or _text(link)
    )
    if not title:
        return None

    preview = ""
    for element in (card, img, link):
        preview = _attr(element, *PREVIEW_ATTRS)
        if preview:
            break

    duration = ""
    for selector in DURATION_SELECTORS:
        node = card.select_one(selector)
        if node is not None:
            duration = _attr(node, "data-content", "data-duration") or _text(node)
            if duration:
                break
    if not duration:
        duration = _attr(card, "data-duration")

    quality = _first_text(card, QUALITY_SELECTORS)
    if not quality:
        match = _QUALITY_RE.search(_attr(card, "class", "data-quality") + " " + title)
        quality = match.group(1).upper() if match else ""

    premium = any(card.select_one(selector) is not None for selector in PREMIUM_SELECTORS)
    performer = _first_text(card, PERFORMER_SELECTORS) or _attr(card, "data-pornstar", "data-model")

    return RawItem(
        title=title,
        url=href,
        thumbnail=_attr(img, *THUMB_ATTRS),
        preview_url=preview,
        duration=duration,
        views=_first_text(card, VIEWS_SELECTORS),
        quality=quality,
        performer=performer,
        premium=premium,
    )


def parse_results(html: str, selector: str) -> list[RawItem]:
    soup = BeautifulSoup(html, "html.parser")
    items: list[RawItem] = []
    for card in soup.select(selector):
        item = parse_card(card)
        if item is not None:
            items.append(item)
    return items


class HTMLEngine(BaseEngine):
    def __init__(
        self,
        spec: EngineSpec,
        client_factory: Callable[[], httpx.AsyncClient] = get_shared_http_client,
    ) -> None:
        self.spec = spec
        self.name = spec.name
        self.display_name = spec.display_name
        self.tier = spec.tier
        self.base_url = spec.base_url
        self.bangs = spec.bangs
        self.capabilities = spec.capabilities
        self._client_factory = client_factory

    async def fetch(self, url: str) -> str:
        client = self._client_factory()
        try:
            response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise EngineTimeoutError(self.name) from exc
        except httpx.TransportError as exc:
            raise EngineNetworkError(self.name, str(exc) or type(exc).__name__) from exc

        status = response.status_code
        if status == 429:
            raise EngineRateLimitedError(self.name)
        if status >= 500:
            raise EngineServerError(self.name, status)
        if status >= 400:
            raise EngineBlockedError(self.name, status)
        return response.text

    async def search(self, query: str, page: int) -> list[RawItem]:
        url = self.spec.search_url(query, page)
        html = await self.fetch(url)
        try:
            items = parse_results(html, self.spec.item_selector)
        except Exception as exc:
            raise EngineParseError(self.name, str(exc)) from exc

        if not items:
            lowered = html[:20000].lower()
            if any(marker in lowered for marker in _BOT_MARKERS):
                raise EngineBlockedError(self.name)
        logger.debug(f"{self.name}: parsed {len(items)} item(s) from {url}")
        return items
