from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass, field

from vidsearch.engines.base import RawItem
from vidsearch.models.schemas import ResultItem
from vidsearch.services.dispatcher import STATUS_OK, EngineDone, RawResult
from vidsearch.services.normalize import (
    absolute_url,
    canonical_url,
    format_duration,
    parse_duration,
    parse_views,
    result_id,
)
from vidsearch.services.query_resolver import ParsedQuery

PREMIUM_MARKERS = ("premium", "gold", "vip", "paid", "members only")
_SEPARATORS_RE = re.compile(r"[\W_]+")


@dataclass(frozen=True)
class FilterOptions:
    min_duration_seconds: int = 0
    filter_premium: bool = True


@dataclass
class SearchSession:
    """Per-request bookkeeping. Never shared between searches."""

    query: ParsedQuery
    engine_set: tuple[str, ...]
    started: float = field(default_factory=time.perf_counter)
    engines_completed: int = 0
    engines_used: list[str] = field(default_factory=list)
    engines_failed: list[str] = field(default_factory=list)
    seen_urls: set[str] = field(default_factory=set)
    results_emitted: int = 0
    dropped: int = 0

    @property
    def is_complete(self) -> bool:
        return self.engines_completed + len(self.engines_failed) == len(self.engine_set)

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)


def _spaced(text: str) -> str:
    """Lower-case words split on punctuation, so @mia_malkova matches "Mia Malkova's"."""
    return " ".join(_SEPARATORS_RE.sub(" ", text.lower()).split())


def is_premium(item: RawItem) -> bool:
    if item.premium:
        return True
    quality = item.quality.lower()
    return any(marker in quality for marker in PREMIUM_MARKERS)


class ResultAggregator:
    """Normalizes raw hits, filters them and drops repeated URLs.

    `consume` returns the canonical item to forward, or None when the hit
    is filtered out or already seen in this session.
    """

    def __init__(self, session: SearchSession, options: FilterOptions | None = None) -> None:
        self.session = session
        self.options = options or FilterOptions()
        self._lock = threading.Lock()
        self._phrases = tuple(p.lower() for p in session.query.exact_phrases)
        self._exclusions = tuple(session.query.exclusions)
        self._performers = tuple(name for p in session.query.performers if (name := _spaced(p)))

    def normalize(self, raw: RawResult) -> ResultItem | None:
        item = raw.item
        title = " ".join((item.title or "").split())
        url = absolute_url(item.url, raw.base_url)
        if not title or not url:
            return None

        duration_seconds = item.duration_seconds or parse_duration(item.duration)
        views_count = item.views_count or parse_views(item.views)

        return ResultItem(
            id=result_id(url, raw.engine),
            title=title,
            url=url,
            thumbnail=absolute_url(item.thumbnail, raw.base_url),
            preview_url=absolute_url(item.preview_url, raw.base_url) or None,
            download_url=absolute_url(item.download_url, raw.base_url) or None,
            duration=item.duration.strip() or format_duration(duration_seconds),
            duration_seconds=duration_seconds,
            views=item.views.strip(),
            views_count=views_count,
            quality=item.quality.strip() or None,
            performer=" ".join(item.performer.split()) or None,
            source=raw.engine,
            source_display=raw.display_name,
        )

    def passes_filters(self, raw: RawItem, item: ResultItem) -> bool:
        minimum = self.options.min_duration_seconds
        if minimum > 0 and 0 < item.duration_seconds < minimum:
            return False
        if self.options.filter_premium and is_premium(raw):
            return False
        title = item.title.lower()
        if any(phrase not in title for phrase in self._phrases):
            return False
        if any(word in title for word in self._exclusions):
            return False
        if self._performers:
            haystack = f" {_spaced(item.title)} {_spaced(item.performer or '')} "
            if not any(f" {name} " in haystack for name in self._performers):
                return False
        return True

    def consume(self, raw: RawResult) -> ResultItem | None:
        item = self.normalize(raw)
        if item is None or not self.passes_filters(raw.item, item):
            with self._lock:
                self.session.dropped += 1
            return None

        key = canonical_url(item.url)
        with self._lock:
            if key in self.session.seen_urls:
                self.session.dropped += 1
                return None
            self.session.seen_urls.add(key)
            self.session.results_emitted += 1
        return item

    def engine_finished(self, done: EngineDone) -> None:
        with self._lock:
            if done.status == STATUS_OK:
                self.session.engines_completed += 1
                self.session.engines_used.append(done.engine)
            elif done.engine not in self.session.engines_failed:
                self.session.engines_failed.append(done.engine)
