"""Plain data records shared by the storage, search and routing layers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class SourceType(str, Enum):
    """Where a drawer's content came from."""

    PROJECT = "project"
    CONVERSATION = "conversation"
    MANUAL = "manual"

    def __str__(self) -> str:
        return self.value


@dataclass
class Drawer:
    """One stored piece of raw memory text."""

    id: str
    content: str
    wing: str
    room: str | None
    source_file: str | None
    source_type: SourceType
    added_at: str
    chunk_index: int | None
    importance: int = 0
    """Importance ranking (0-5); higher values surface first in wake-up context."""


@dataclass
class Triple:
    """A knowledge-graph fact: subject, predicate, object with a validity window."""

    id: str
    subject: str
    predicate: str
    object: str
    valid_from: str | None
    valid_to: str | None
    confidence: float
    source_drawer: str | None


@dataclass
class TaxonomyEntry:
    """Routing keywords for one wing/room pair."""

    wing: str
    room: str
    display_name: str | None
    keywords: list[str] = field(default_factory=list)


@dataclass
class TripleStats:
    """Aggregate counts over the knowledge graph."""

    total: int
    active: int
    expired: int
    entities: int
    top_predicates: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class RouteDecision:
    """The wing/room a query was routed to and why."""

    wing: str | None
    room: str | None
    confidence: float
    reason: str


@dataclass
class SearchResult:
    """One search hit with its citation and routing context."""

    drawer_id: str
    content: str
    wing: str
    room: str | None
    source_file: str
    similarity: float
    route: RouteDecision
    tunnel_hints: list[str] = field(default_factory=list)
    """Other wings that share this result's room."""

    def to_dict(self) -> dict[str, Any]:
        """Serialisable form; empty tunnel hints are left out."""
        data = asdict(self)
        if not self.tunnel_hints:
            del data["tunnel_hints"]
        return data