"""Data model of the AAAK compressed memory format."""

from __future__ import annotations

from dataclasses import dataclass, field

WEIGHT_STAR = "\u2605"


@dataclass
class AaakMeta:
    """Scope and provenance supplied when encoding text."""

    wing: str
    room: str
    date: str
    source: str


@dataclass
class AaakHeader:
    """The first line of a document: version and scope."""

    version: int
    wing: str
    room: str
    date: str
    source: str


@dataclass
class Zettel:
    """One compressed memory line."""

    id: int
    entities: list[str]
    topics: list[str]
    quote: str
    weight: int
    emotions: list[str]
    flags: list[str]


@dataclass
class Tunnel:
    """A labelled link between two zettels."""

    left: int
    right: int
    label: str


@dataclass
class ArcLine:
    """An emotional arc across the document."""

    emotions: list[str]


AaakLine = Zettel | Tunnel | ArcLine


class ParseError(ValueError):
    """A document could not be parsed."""


class MissingHeaderError(ParseError):
    def __init__(self) -> None:
        super().__init__("missing AAAK header")


class InvalidHeaderError(ParseError):
    def __init__(self) -> None:
        super().__init__("invalid AAAK header")


class InvalidVersionError(ParseError):
    def __init__(self) -> None:
        super().__init__("invalid version marker")


class InvalidZettelError(ParseError):
    """A body line is malformed or refers to something that does not exist."""

    def __init__(self, line: str) -> None:
        super().__init__(f"invalid zettel line: {line}")
        self.line = line


def _render_line(line: AaakLine) -> str:
    if isinstance(line, Zettel):
        return "{}:{}|{}|\"{}\"|{}|{}|{}".format(
            line.id,
            "+".join(line.entities),
            "_".join(line.topics),
            line.quote.replace('"', "'"),
            WEIGHT_STAR * max(line.weight, 1),
            "+".join(line.emotions),
            "+".join(line.flags),
        )
    if isinstance(line, Tunnel):
        return f"T:{line.left}<->{line.right}|{line.label}"
    return "ARC:" + "->".join(line.emotions)


@dataclass
class AaakDocument:
    """A header followed by zettel, tunnel and arc lines."""

    header: AaakHeader
    body: list[AaakLine] = field(default_factory=list)
    zettels: list[Zettel] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> AaakDocument:
        """Parse the textual form; raises :class:`ParseError` when malformed."""
        from .parse import parse_document

        return parse_document(text)

    def zettel_lines(self) -> list[Zettel]:
        """The zettels in body order, or the stored zettels when the body is empty."""
        if self.body:
            return [line for line in self.body if isinstance(line, Zettel)]
        return list(self.zettels)

    def body_lines(self) -> list[AaakLine]:
        """The body, or the zettels as body lines when the body is empty."""
        if self.body:
            return list(self.body)
        return list(self.zettels)

    def __str__(self) -> str:
        header = self.header
        head = (
            f"V{header.version}|{header.wing}|{header.room}|"
            f"{header.date}|{header.source}"
        )
        return head + "\n" + "\n".join(_render_line(line) for line in self.body_lines())


@dataclass
class EncodeReport:
    """What was lost or trimmed while encoding."""

    topics_truncated: int
    key_sentence_truncated: bool
    coverage: float
    lost_assertions: list[str] = field(default_factory=list)


@dataclass
class EncodeOutput:
    document: AaakDocument
    report: EncodeReport


@dataclass
class RoundtripReport:
    """Which assertions of the original text survive decoding."""

    preserved: list[str]
    lost: list[str]
    coverage: float