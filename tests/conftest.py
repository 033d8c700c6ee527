from __future__ import annotations

import asyncio

import pytest

from vidsearch.engines.base import BaseEngine, Feature, RawItem
from vidsearch.services.registry import EngineRegistry


class FakeEngine(BaseEngine):
    """In-process engine returning canned items.

    `errors` are raised by successive calls before the engine starts
    answering; `fail_with` makes every call raise.
    """

    def __init__(
        self,
        name: str,
        items=(),
        *,
        tier: int = 1,
        bangs: tuple[str, ...] = (),
        errors=(),
        fail_with: Exception | None = None,
        delay: float = 0.0,
        display_name: str | None = None,
        base_url: str = "https://example.com",
    ) -> None:
        self.name = name
        self.display_name = display_name or name.title()
        self.tier = tier
        self.bangs = bangs
        self.base_url = base_url
        self.capabilities = frozenset({Feature.PAGINATION})
        self.items = list(items)
        self._errors = list(errors)
        self.fail_with = fail_with
        self.delay = delay
        self.calls = 0
        self.queries: list[tuple[str, int]] = []

    async def search(self, query: str, page: int) -> list[RawItem]:
        self.calls += 1
        self.queries.append((query, page))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._errors:
            raise self._errors.pop(0)
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.items)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_item(url: str, title: str = "Sample video", **kwargs) -> RawItem:
    kwargs.setdefault("duration", "12:30")
    return RawItem(title=title, url=url, **kwargs)


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return EngineRegistry(
        [
            FakeEngine("pornhub", bangs=("ph",), display_name="PornHub"),
            FakeEngine("redtube", bangs=("rt",), display_name="RedTube"),
            FakeEngine("xvideos", bangs=("xv",), display_name="XVideos"),
            FakeEngine("eporner", tier=2, bangs=("ep",), display_name="Eporner"),
        ]
    )
