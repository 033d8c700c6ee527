"""Query parsing: bangs, exact phrases, exclusions and performers.

`!ph !rt lesbian` searches pornhub and redtube for "lesbian". Bangs may
appear anywhere in the query and are matched case-insensitively against each
engine's codes. Besides bangs:

- `"exact phrase"` requires the phrase in result titles (the words still
  go to the engines)
- `-word` drops results whose title contains the word
- `@name` keeps results featuring that performer (`@mia_malkova` also
  matches "Mia Malkova"); the name is not sent to the engines

`resolve` is pure: it reads a registry snapshot and returns a new
`ParsedQuery`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from vidsearch.errors import EmptyQueryError, UnknownBangError
from vidsearch.services.registry import RegistrySnapshot

TOKEN_RE = re.compile(r'"([^"]*)"|(\S+)')

UNKNOWN_BANG_PASSTHROUGH = "passthrough"
UNKNOWN_BANG_ERROR = "error"


@dataclass(frozen=True)
class ParsedQuery:
    raw: str
    text: str
    engines: tuple[str, ...]
    page: int = 1
    bang_tokens: tuple[str, ...] = ()
    bang_engines: tuple[str, ...] = ()
    unknown_bangs: tuple[str, ...] = ()
    exact_phrases: tuple[str, ...] = ()
    exclusions: tuple[str, ...] = ()
    performers: tuple[str, ...] = ()

    @property
    def has_bang(self) -> bool:
        return bool(self.bang_tokens)

    @property
    def has_performer(self) -> bool:
        return bool(self.performers)


def _is_bang(token: str) -> bool:
    return token.startswith("!") and len(token) >= 2


def _is_exclusion(token: str) -> bool:
    return token.startswith("-") and len(token) >= 2


def _is_performer(token: str) -> bool:
    return token.startswith("@") and len(token) >= 2


def resolve(
    raw: str,
    snapshot: RegistrySnapshot,
    *,
    page: int = 1,
    engines: Iterable[str] | None = None,
    unknown_bang_mode: str = UNKNOWN_BANG_PASSTHROUGH,
) -> ParsedQuery:
    """Split a raw query into clean text and the engines to search.

    Unrecognized bangs stay in the text and do not narrow the engine set,
    unless `unknown_bang_mode` is "error". `engines` (explicit names) only
    applies when no bang was recognized. Bangs naming a disabled engine are
    consumed but the engine is not searched.
    """
    if raw is None or not raw.strip():
        raise EmptyQueryError()

    words: list[str] = []
    bang_tokens: list[str] = []
    bang_engines: list[str] = []
    unknown: list[str] = []
    phrases: list[str] = []
    exclusions: list[str] = []
    performers: list[str] = []

    for match in TOKEN_RE.finditer(raw):
        phrase, token = match.group(1), match.group(2)
        if phrase is not None:
            phrase = " ".join(phrase.split())
            if phrase:
                phrases.append(phrase)
                words.append(phrase)
            continue

        if _is_bang(token):
            entry = snapshot.lookup_bang(token[1:])
            if entry is None:
                unknown.append(token)
                words.append(token)
                continue
            bang_tokens.append(token.lower())
            if entry.name not in bang_engines:
                bang_engines.append(entry.name)
        elif _is_exclusion(token):
            exclusions.append(token[1:].lower())
        elif _is_performer(token):
            performer = token[1:].lower()
            if performer not in performers:
                performers.append(performer)
        else:
            words.append(token)

    if unknown and unknown_bang_mode == UNKNOWN_BANG_ERROR:
        raise UnknownBangError(unknown)

    text = " ".join(words).strip()
    if not text:
        raise EmptyQueryError("Query cannot be empty after bang parsing")

    if bang_tokens:
        selected = [
            name
            for name in bang_engines
            if (entry := snapshot.get(name)) is not None and entry.enabled
        ]
    else:
        enabled = [entry.name for entry in snapshot.enabled()]
        requested = [n.strip().lower() for n in (engines or ()) if n and n.strip()]
        if requested:
            selected = [name for name in dict.fromkeys(requested) if name in enabled]
        else:
            selected = enabled

    return ParsedQuery(
        raw=raw,
        text=text,
        engines=tuple(selected),
        page=max(int(page or 1), 1),
        bang_tokens=tuple(bang_tokens),
        bang_engines=tuple(bang_engines),
        unknown_bangs=tuple(unknown),
        exact_phrases=tuple(phrases),
        exclusions=tuple(exclusions),
        performers=tuple(performers),
    )
