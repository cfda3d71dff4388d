"""Structured signal extraction from text, without building an AAAK document."""

from __future__ import annotations

from dataclasses import dataclass, field

from .codec import (
    DEFAULT_ENTITY_CODE,
    default_entity_code,
    detect_emotions,
    detect_flags,
    extract_entities,
    extract_topics,
    infer_weight,
    normalize_whitespace,
)


@dataclass
class AaakSignals:
    """Entities, topics, flags, emotions and importance derived from text."""

    entities: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)
    emotions: list[str] = field(default_factory=list)
    importance_stars: int = 2


def analyze(text: str) -> AaakSignals:
    """Analyse ``text`` with the same heuristics the codec uses."""
    normalized = normalize_whitespace(text)

    entity_codes: list[str] = []
    for entity in extract_entities(normalized):
        code = default_entity_code(entity)
        if code not in entity_codes:
            entity_codes.append(code)

    flags = detect_flags(normalized)
    return AaakSignals(
        entities=entity_codes or [DEFAULT_ENTITY_CODE],
        topics=extract_topics(normalized),
        flags=flags,
        emotions=detect_emotions(normalized),
        importance_stars=infer_weight(flags),
    )