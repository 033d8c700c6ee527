from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator


class Feature(str, Enum):
    PREVIEW = "preview"
    DOWNLOAD = "download"
    PAGINATION = "pagination"


@dataclass
class RawItem:
    """One hit as an engine scraped it, before normalization."""

    title: str
    url: str
    thumbnail: str = ""
    preview_url: str = ""
    download_url: str = ""
    duration: str = ""
    duration_seconds: int = 0
    views: str = ""
    views_count: int = 0
    quality: str = ""
    performer: str = ""
    premium: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


class BaseEngine:
    """Contract every site adapter implements.

    Engines are stateless request handlers: `search` fetches one page of
    results and returns them. Adapters able to hand out results while the
    page is still being read override `stream`; the default replays
    `search`.
    """

    name: str = "base"
    display_name: str = "Base"
    tier: int = 3
    base_url: str = ""
    bangs: tuple[str, ...] = ()
    capabilities: frozenset[Feature] = frozenset()

    async def search(self, query: str, page: int) -> list[RawItem]:
        raise NotImplementedError(f"{self.name} does not implement search")

    async def stream(self, query: str, page: int) -> AsyncIterator[RawItem]:
        for item in await self.search(query, page):
            yield item

    def supports_feature(self, feature: Feature) -> bool:
        return feature in self.capabilities

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, tier={self.tier})"
