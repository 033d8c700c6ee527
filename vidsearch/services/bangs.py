from __future__ import annotations

from dataclasses import asdict, dataclass

from vidsearch.services.registry import EngineEntry, RegistrySnapshot


@dataclass(frozen=True)
class BangInfo:
    bang: str
    engine_name: str
    display_name: str
    short_code: str
    enabled: bool

    def to_dict(self) -> dict:
        return asdict(self)


def _info(entry: EngineEntry) -> BangInfo:
    short = min(entry.codes, key=lambda c: (len(c), c))
    return BangInfo(
        bang=f"!{entry.name}",
        engine_name=entry.name,
        display_name=entry.engine.display_name or entry.name,
        short_code=f"!{short}",
        enabled=entry.enabled,
    )


def list_bangs(snapshot: RegistrySnapshot) -> list[BangInfo]:
    entries = sorted(snapshot.entries, key=lambda e: (e.engine.tier, e.name))
    return [_info(entry) for entry in entries]


def autocomplete(prefix: str, snapshot: RegistrySnapshot, *, limit: int = 10) -> list[BangInfo]:
    """Suggest engines for a partial bang ("po" for "!po").

    Prefix matches on any code (the engine name is one) rank above substring
    matches; the shorter the matching code, the higher.
    """
    prefix = prefix.lower().lstrip("!")
    if not prefix:
        return []

    scored: list[tuple[int, str, BangInfo]] = []
    for entry in snapshot.entries:
        score = 0
        code_hits = [c for c in entry.codes if c.startswith(prefix)]
        if code_hits:
            score = 100 - min(len(c) for c in code_hits)
        elif any(prefix in c for c in entry.codes):
            score = 10
        if score > 0:
            scored.append((score, entry.name, _info(entry)))

    scored.sort(key=lambda item: (-item[0], item[1]))
    return [info for _, _, info in scored[:limit]]
