"""Identifier construction, timestamps and keyword-based room routing."""

from __future__ import annotations

import hashlib
import time
from collections.abc import Iterable

from .types import TaxonomyEntry

DEFAULT_ROOM = "default"


def build_drawer_id(wing: str, room: str | None, content: str) -> str:
    """Deterministic drawer id from scope and a content hash."""
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return (
        f"drawer_{_sanitize_component(wing)}_"
        f"{_sanitize_component(room if room is not None else DEFAULT_ROOM)}_{digest[:8]}"
    )


def build_triple_id(subject: str, predicate: str, obj: str) -> str:
    """Deterministic triple id from its three parts."""
    hasher = hashlib.sha256()
    hasher.update(subject.encode("utf-8"))
    hasher.update(b"\x00")
    hasher.update(predicate.encode("utf-8"))
    hasher.update(b"\x00")
    hasher.update(obj.encode("utf-8"))
    digest = hasher.hexdigest()
    return (
        f"triple_{_sanitize_prefix(subject, 8)}_"
        f"{_sanitize_prefix(predicate, 8)}_{digest[:8]}"
    )


def current_timestamp() -> str:
    """Seconds since the Unix epoch, as a string."""
    seconds = int(time.time())
    return str(seconds) if seconds >= 0 else "0"


def synthetic_source_file(drawer_id: str) -> str:
    return f"mempal://drawer/{drawer_id}"


def source_file_or_synthetic(drawer_id: str, source_file: str | None) -> str:
    """The trimmed source file, or a synthetic one when it is missing or blank."""
    if source_file is not None:
        trimmed = source_file.strip()
        if trimmed:
            return trimmed
    return synthetic_source_file(drawer_id)


def route_room_from_taxonomy(
    content: str, wing: str, taxonomy: Iterable[TaxonomyEntry]
) -> str:
    """Pick the room in ``wing`` whose keywords best match ``content``.

    Entries are ranked by number of matched keywords, then total matched
    length, then keyword count; on a full tie the later entry wins.
    """
    normalized = content.lower()
    terms = _content_terms(normalized)

    best: TaxonomyEntry | None = None
    best_key: tuple[int, int, int] | None = None
    for entry in taxonomy:
        if entry.wing != wing:
            continue
        matches = _matched_keywords(normalized, terms, entry)
        if not matches:
            continue
        key = (
            len(matches),
            sum(len(match.encode("utf-8")) for match in matches),
            len(entry.keywords),
        )
        if best_key is None or key >= best_key:
            best, best_key = entry, key

    if best is None or not best.room.strip():
        return DEFAULT_ROOM
    return best.room


def _sanitize_component(value: str) -> str:
    return "".join(
        ch.lower() if ch.isascii() and ch.isalnum() else "_" for ch in value
    )


def _sanitize_prefix(value: str, max_len: int) -> str:
    return _sanitize_component(value)[:max_len] or "x"


def _matched_keywords(
    normalized_content: str, terms: set[str], entry: TaxonomyEntry
) -> list[str]:
    cleaned = (keyword.strip().lower() for keyword in entry.keywords)
    return [
        keyword
        for keyword in cleaned
        if keyword and (keyword in terms or keyword in normalized_content)
    ]


def _content_terms(content: str) -> set[str]:
    terms: set[str] = set()
    current: list[str] = []
    for ch in content:
        if ch.isalnum():
            current.append(ch)
        elif current:
            terms.add("".join(current))
            current.clear()
    if current:
        terms.add("".join(current))
    return terms