"""Parser for the textual AAAK format."""

from __future__ import annotations

from .model import (
    WEIGHT_STAR,
    AaakDocument,
    AaakHeader,
    AaakLine,
    ArcLine,
    InvalidHeaderError,
    InvalidVersionError,
    InvalidZettelError,
    MissingHeaderError,
    Tunnel,
    Zettel,
)

ALLOWED_FLAGS: tuple[str, ...] = (
    "DECISION",
    "ORIGIN",
    "CORE",
    "PIVOT",
    "TECHNICAL",
    "SENSITIVE",
)

_U8_MAX = 0xFF
_USIZE_MAX = 0xFFFF_FFFF_FFFF_FFFF


def parse_document(text: str) -> AaakDocument:
    """Parse a whole document, checking ids are unique and tunnels resolve."""
    lines = (line for line in _split_lines(text) if line.strip())
    first = next(lines, None)
    if first is None:
        raise MissingHeaderError()
    header = _parse_header(first)

    body: list[AaakLine] = []
    zettels: list[Zettel] = []
    zettel_ids: set[int] = set()

    for line in lines:
        if line.startswith("T:"):
            body.append(_parse_tunnel(line))
            continue
        if line.startswith("ARC:"):
            body.append(_parse_arc(line))
            continue
        zettel = _parse_zettel(line)
        if zettel.id in zettel_ids:
            raise InvalidZettelError(line)
        zettel_ids.add(zettel.id)
        body.append(zettel)
        zettels.append(zettel)

    for item in body:
        if isinstance(item, Tunnel) and (
            item.left not in zettel_ids or item.right not in zettel_ids
        ):
            raise InvalidZettelError(f"T:{item.left}<->{item.right}|{item.label}")

    return AaakDocument(header=header, body=body, zettels=zettels)


def _split_lines(text: str) -> list[str]:
    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def _parse_unsigned(raw: str, maximum: int) -> int | None:
    digits = raw[1:] if raw.startswith("+") else raw
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None
    value = int(digits)
    return value if value <= maximum else None


def _parse_header(line: str) -> AaakHeader:
    parts = line.split("|")
    if len(parts) != 5:
        raise InvalidHeaderError()
    marker, wing, room, date, source = parts
    if not marker.startswith("V"):
        raise InvalidVersionError()
    version = _parse_unsigned(marker[1:], _U8_MAX)
    if version is None:
        raise InvalidVersionError()
    return AaakHeader(version=version, wing=wing, room=room, date=date, source=source)


def _parse_zettel(line: str) -> Zettel:
    raw_id, sep, rest = line.partition(":")
    if not sep:
        raise InvalidZettelError(line)
    zettel_id = _parse_unsigned(raw_id, _USIZE_MAX)
    if zettel_id is None:
        raise InvalidZettelError(line)

    parts = rest.split("|")
    if len(parts) != 6:
        raise InvalidZettelError(line)
    raw_entities, raw_topics, raw_quote, raw_weight, raw_emotions, raw_flags = parts

    entities = _split_field(raw_entities, "+")
    if not entities or not all(_is_entity_code(entity) for entity in entities):
        raise InvalidZettelError(line)

    topics = _split_field(raw_topics, "_")
    if not topics:
        raise InvalidZettelError(line)

    quote = _parse_quote(raw_quote)
    if quote is None:
        raise InvalidZettelError(line)

    weight = _parse_weight(raw_weight)
    if weight is None:
        raise InvalidZettelError(line)

    emotions = _split_field(raw_emotions, "+")
    if not emotions or not all(_is_emotion_code(emotion) for emotion in emotions):
        raise InvalidZettelError(line)

    flags = _split_field(raw_flags, "+")
    if not flags or not all(flag in ALLOWED_FLAGS for flag in flags):
        raise InvalidZettelError(line)

    return Zettel(
        id=zettel_id,
        entities=entities,
        topics=topics,
        quote=quote,
        weight=weight,
        emotions=emotions,
        flags=flags,
    )


def _parse_tunnel(line: str) -> Tunnel:
    rest = line.removeprefix("T:")
    pair, sep, label = rest.partition("|")
    if not sep or not label.strip():
        raise InvalidZettelError(line)
    raw_left, sep, raw_right = pair.partition("<->")
    if not sep:
        raise InvalidZettelError(line)
    left = _parse_unsigned(raw_left, _USIZE_MAX)
    right = _parse_unsigned(raw_right, _USIZE_MAX)
    if left is None or right is None:
        raise InvalidZettelError(line)
    return Tunnel(left=left, right=right, label=label)


def _parse_arc(line: str) -> ArcLine:
    rest = line.removeprefix("ARC:")
    if not rest:
        raise InvalidZettelError(line)
    emotions = rest.split("->")
    if not all(_is_emotion_code(emotion) for emotion in emotions):
        raise InvalidZettelError(line)
    return ArcLine(emotions=emotions)


def _split_field(raw: str, separator: str) -> list[str]:
    return [item for item in raw.split(separator) if item]


def _parse_quote(raw: str) -> str | None:
    if len(raw) < 2 or not raw.startswith('"') or not raw.endswith('"'):
        return None
    return raw[1:-1]


def _parse_weight(raw: str) -> int | None:
    if not raw or any(ch != WEIGHT_STAR for ch in raw):
        return None
    count = len(raw)
    return count if 1 <= count <= 5 else None


def _is_entity_code(raw: str) -> bool:
    return len(raw) == 3 and all("A" <= ch <= "Z" for ch in raw)


def _is_emotion_code(raw: str) -> bool:
    return 3 <= len(raw) <= 7 and all("a" <= ch <= "z" for ch in raw)