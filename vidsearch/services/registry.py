"""Engine registry.

Readers take an immutable `RegistrySnapshot` without locking. Writers (admin
toggles, registration) copy the entry map under one lock and swap the
reference, so reads never wait on each other or on a writer.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Iterable, Mapping

from vidsearch.engines.base import BaseEngine
from vidsearch.errors import UnknownEngineError
from vidsearch.services.logger import logger


@dataclass(frozen=True)
class EngineEntry:
    engine: BaseEngine
    enabled: bool = True

    @property
    def name(self) -> str:
        return self.engine.name

    @property
    def codes(self) -> tuple[str, ...]:
        """Bang codes, lower-cased; the engine name always counts as one."""
        codes = [self.engine.name.lower()]
        codes.extend(code.lower().lstrip("!") for code in self.engine.bangs)
        return tuple(dict.fromkeys(codes))


@dataclass(frozen=True)
class RegistrySnapshot:
    entries: tuple[EngineEntry, ...]

    def get(self, name: str) -> EngineEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def enabled(self) -> list[EngineEntry]:
        """Enabled engines, most reliable tier first."""
        return sorted(
            (e for e in self.entries if e.enabled),
            key=lambda e: (e.engine.tier, e.name),
        )

    def lookup_bang(self, code: str) -> EngineEntry | None:
        code = code.lower().lstrip("!")
        if not code:
            return None
        for entry in self.entries:
            if code in entry.codes:
                return entry
        return None


class EngineRegistry:
    def __init__(self, engines: Iterable[BaseEngine] = ()) -> None:
        self._write_lock = threading.Lock()
        self._entries: Mapping[str, EngineEntry] = MappingProxyType({})
        for engine in engines:
            self.register(engine)

    def register(self, engine: BaseEngine, *, enabled: bool = True) -> None:
        with self._write_lock:
            entries = dict(self._entries)
            if engine.name in entries:
                logger.warning(f"Engine {engine.name} registered twice; replacing")
            entries[engine.name] = EngineEntry(engine=engine, enabled=enabled)
            self._entries = MappingProxyType(entries)

    def set_enabled(self, name: str, enabled: bool) -> EngineEntry:
        with self._write_lock:
            entries = dict(self._entries)
            current = entries.get(name)
            if current is None:
                raise UnknownEngineError(name)
            updated = replace(current, enabled=enabled)
            entries[name] = updated
            self._entries = MappingProxyType(entries)
        logger.info(f"Engine {name} {'enabled' if enabled else 'disabled'}")
        return updated

    def apply_default_engines(self, names: Iterable[str]) -> None:
        """Enable exactly `names` when given; leave everything enabled otherwise."""
        wanted = {n.strip().lower() for n in names if n.strip()}
        if not wanted:
            return
        with self._write_lock:
            entries = {
                name: replace(entry, enabled=name in wanted)
                for name, entry in self._entries.items()
            }
            self._entries = MappingProxyType(entries)
        unknown = wanted - set(entries)
        if unknown:
            logger.warning(f"Default engines not registered: {sorted(unknown)}")

    def get(self, name: str) -> EngineEntry | None:
        return self._entries.get(name)

    def snapshot(self) -> RegistrySnapshot:
        entries = self._entries
        return RegistrySnapshot(entries=tuple(entries.values()))

    def __len__(self) -> int:
        return len(self._entries)
