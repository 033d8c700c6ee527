"""Field coercion for raw engine hits."""

from __future__ import annotations

import hashlib
import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    {
        "fbclid",
        "gclid",
        "dclid",
        "msclkid",
        "mc_cid",
        "mc_eid",
        "ref",
        "ref_src",
        "src",
        "source",
        "yclid",
        "igshid",
    }
)

_DEFAULT_PORTS = {"http": 80, "https": 443}
_MINUTES_RE = re.compile(r"(\d+)\s*(?:minutes|mins|min|m)(?![a-z])", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+)\s*(?:hours?|hrs|hr|h)(?![a-z])", re.IGNORECASE)
_SECONDS_RE = re.compile(r"(\d+)\s*(?:seconds?|secs|sec|s)(?![a-z])", re.IGNORECASE)
_VIEWS_RE = re.compile(r"([\d.,]+)\s*([kmb])?", re.IGNORECASE)
_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


def parse_duration(value: str | None) -> int:
    """Duration text to seconds: "12:34", "1:02:03", "15 min", "1h 20m", "2m30s"."""
    if not value:
        return 0
    text = value.strip()
    if ":" in text:
        parts = [p.strip() for p in text.split(":")]
        if not all(p.isdigit() for p in parts) or len(parts) > 3:
            return 0
        seconds = 0
        for part in parts:
            seconds = seconds * 60 + int(part)
        return seconds

    total = 0
    for pattern, factor in ((_HOURS_RE, 3600), (_MINUTES_RE, 60), (_SECONDS_RE, 1)):
        match = pattern.search(text)
        if match:
            total += int(match.group(1)) * factor
    if total:
        return total
    return int(text) if text.isdigit() else 0


def parse_views(value: str | None) -> int:
    """View count text to an integer: "1.2M views", "12,345", "3K"."""
    if not value:
        return 0
    match = _VIEWS_RE.search(value.strip())
    if not match:
        return 0
    number, suffix = match.group(1), match.group(2)
    number = number.replace(",", "")
    if suffix:
        try:
            return int(float(number) * _MULTIPLIERS[suffix.lower()])
        except ValueError:
            return 0
    digits = number.replace(".", "")
    return int(digits) if digits.isdigit() else 0


def format_duration(seconds: int) -> str:
    if seconds <= 0:
        return ""
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def absolute_url(url: str | None, base_url: str) -> str:
    if not url:
        return ""
    url = url.strip()
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("data:"):
        return ""
    return urljoin(base_url.rstrip("/") + "/", url)


def _is_tracking(key: str) -> bool:
    key = key.lower()
    return key.startswith("utm_") or key in TRACKING_PARAMS


def canonical_url(url: str) -> str:
    """Dedup key for a result URL.

    Scheme and host lower-cased, "www." and default ports dropped, fragment
    and trailing slash removed, tracking parameters stripped and the rest of
    the query sorted.
    """
    parts = urlsplit(url.strip())
    scheme = (parts.scheme or "https").lower()
    host = (parts.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    try:
        port = parts.port
    except ValueError:
        port = None
    netloc = host if port is None or _DEFAULT_PORTS.get(scheme) == port else f"{host}:{port}"
    path = parts.path.rstrip("/") or ""
    query = urlencode(
        sorted((k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if not _is_tracking(k))
    )
    return urlunsplit((scheme, netloc, path, query, ""))


def result_id(url: str, source: str) -> str:
    return hashlib.sha256(f"{url}{source}".encode("utf-8")).hexdigest()[:16]
