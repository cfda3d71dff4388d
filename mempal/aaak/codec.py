"""Heuristic encoder and decoder between plain text and AAAK documents."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from itertools import groupby

from .model import (
    AaakDocument,
    AaakHeader,
    AaakMeta,
    EncodeOutput,
    EncodeReport,
    RoundtripReport,
    Zettel,
)

DEFAULT_MAX_TOPICS = 3
DEFAULT_EMOTION = "determ"
DEFAULT_ENTITY_CODE = "UNK"

EMOTION_SIGNALS: tuple[tuple[str, str], ...] = (
    ("decided", "determ"),
    ("determined", "determ"),
    ("prefer", "convict"),
    ("confident", "convict"),
    ("worried", "anx"),
    ("anxious", "anx"),
    ("concern", "anx"),
    ("excited", "excite"),
    ("frustrated", "frust"),
    ("confused", "confuse"),
    ("love", "love"),
    ("hate", "rage"),
    ("hope", "hope"),
    ("fear", "fear"),
    ("trust", "trust"),
    ("happy", "joy"),
    ("joy", "joy"),
    ("sad", "grief"),
    ("grief", "grief"),
    ("surprised", "surpr"),
    ("grateful", "grat"),
    ("curious", "curious"),
    ("wonder", "wonder"),
    ("relieved", "relief"),
    ("satisf", "satis"),
    ("disappoint", "grief"),
    ("vulnerable", "vul"),
    ("tender", "tender"),
    ("honest", "raw"),
    ("doubt", "doubt"),
    ("exhaust", "exhaust"),
    ("warm", "warmth"),
    ("humor", "humor"),
    ("funny", "humor"),
    ("peace", "peace"),
    ("despair", "despair"),
    ("passion", "passion"),
    ("决定", "determ"),
    ("确定", "determ"),
    ("担心", "anx"),
    ("焦虑", "anx"),
    ("兴奋", "excite"),
    ("沮丧", "frust"),
    ("困惑", "confuse"),
    ("开心", "joy"),
    ("高兴", "joy"),
    ("悲伤", "grief"),
    ("惊讶", "surpr"),
    ("感恩", "grat"),
    ("感谢", "grat"),
    ("好奇", "curious"),
    ("信任", "trust"),
    ("希望", "hope"),
    ("恐惧", "fear"),
    ("害怕", "fear"),
    ("满意", "satis"),
    ("失望", "grief"),
    ("轻松", "relief"),
    ("放心", "relief"),
    ("爱", "love"),
    ("恨", "rage"),
    ("怖惧", "fear"),
    ("平静", "peace"),
    ("绝望", "despair"),
    ("热情", "passion"),
    ("怀疑", "doubt"),
    ("疲惫", "exhaust"),
)

FLAG_SIGNALS: tuple[tuple[str, str], ...] = (
    ("decid", "DECISION"),
    ("chose", "DECISION"),
    ("switch", "DECISION"),
    ("migrat", "DECISION"),
    ("replace", "DECISION"),
    ("recommend", "DECISION"),
    ("because", "DECISION"),
    ("found", "ORIGIN"),
    ("create", "ORIGIN"),
    ("start", "ORIGIN"),
    ("born", "ORIGIN"),
    ("launch", "ORIGIN"),
    ("first time", "ORIGIN"),
    ("core", "CORE"),
    ("fundamental", "CORE"),
    ("essential", "CORE"),
    ("principle", "CORE"),
    ("belief", "CORE"),
    ("always", "CORE"),
    ("turning point", "PIVOT"),
    ("changed everything", "PIVOT"),
    ("realized", "PIVOT"),
    ("breakthrough", "PIVOT"),
    ("epiphany", "PIVOT"),
    ("api", "TECHNICAL"),
    ("database", "TECHNICAL"),
    ("architecture", "TECHNICAL"),
    ("deploy", "TECHNICAL"),
    ("infrastructure", "TECHNICAL"),
    ("framework", "TECHNICAL"),
    ("server", "TECHNICAL"),
    ("config", "TECHNICAL"),
    ("auth", "TECHNICAL"),
    ("token", "SENSITIVE"),
    ("password", "SENSITIVE"),
    ("secret", "SENSITIVE"),
    ("credential", "SENSITIVE"),
    ("private", "SENSITIVE"),
    ("sensitive", "SENSITIVE"),
    ("pii", "SENSITIVE"),
    ("决定", "DECISION"),
    ("选择", "DECISION"),
    ("切换", "DECISION"),
    ("迁移", "DECISION"),
    ("替换", "DECISION"),
    ("推荐", "DECISION"),
    ("因为", "DECISION"),
    ("创建", "ORIGIN"),
    ("创立", "ORIGIN"),
    ("开始", "ORIGIN"),
    ("第一次", "ORIGIN"),
    ("核心", "CORE"),
    ("基本", "CORE"),
    ("原则", "CORE"),
    ("信念", "CORE"),
    ("转折", "PIVOT"),
    ("突破", "PIVOT"),
    ("顿悟", "PIVOT"),
    ("接口", "TECHNICAL"),
    ("数据库", "TECHNICAL"),
    ("架构", "TECHNICAL"),
    ("部署", "TECHNICAL"),
    ("框架", "TECHNICAL"),
    ("服务器", "TECHNICAL"),
    ("配置", "TECHNICAL"),
    ("认证", "TECHNICAL"),
    ("密码", "SENSITIVE"),
    ("密钥", "SENSITIVE"),
    ("凭证", "SENSITIVE"),
    ("隐私", "SENSITIVE"),
)

_TOPIC_STOP_WORDS = frozenset(
    {"the", "and", "for", "with", "over", "based", "this", "that", "was", "use", "why"}
)

_ASSERTION_SPLIT = re.compile("[.!?;\u3002\uff01\uff1f\uff1b\uff0c]")
_ASCII_ALNUM_RUN = re.compile("[A-Za-z0-9]+")

_CJK_FUNCTION_WORDS = frozenset(
    {
        "我们", "你们", "他们", "她们", "它们", "这个", "那个", "这些", "那些",
        "为什么", "怎么", "什么", "因为", "所以", "但是",
    }
)

# Single characters that act as particles, pronouns or connectives and so
# separate content words within a run of ideographs.
_CJK_BREAK_CHARS = frozenset("的了着过吗呢吧啊呀嘛和与及或而是在就也都把被很不我你他她它们这那")

# Endings that mark a place or organisation name.
_CJK_ENTITY_SUFFIXES: tuple[str, ...] = (
    "研究院", "研究所", "委员会", "基金会", "公司", "集团", "大学", "学院",
    "银行", "医院", "协会", "省", "市", "县", "国",
)


class _SegmentKind(Enum):
    ASCII_WORD = "ascii"
    CJK = "cjk"


@dataclass(frozen=True)
class _Segment:
    kind: _SegmentKind
    text: str


class AaakCodec:
    """Encodes free text into a single-zettel AAAK document and back."""

    def __init__(self, entity_aliases: Mapping[str, str] | None = None) -> None:
        self._by_name: dict[str, str] = {}
        self._by_code: dict[str, str] = {}
        self.max_topics = DEFAULT_MAX_TOPICS
        for name, code in sorted((entity_aliases or {}).items()):
            self._insert_alias(name, code)

    @classmethod
    def with_entity_aliases(cls, aliases: Mapping[str, str]) -> AaakCodec:
        """A codec that maps entity names to fixed codes (one name per code)."""
        return cls(aliases)

    def _insert_alias(self, name: str, code: str) -> None:
        old_code = self._by_name.pop(name, None)
        if old_code is not None:
            self._by_code.pop(old_code, None)
        old_name = self._by_code.pop(code, None)
        if old_name is not None:
            self._by_name.pop(old_name, None)
        self._by_name[name] = code
        self._by_code[code] = name

    def encode(self, text: str, meta: AaakMeta) -> EncodeOutput:
        normalized = normalize_whitespace(text)
        all_topics = extract_topics(normalized)
        topics = all_topics[: self.max_topics]
        topics_truncated = max(len(all_topics) - self.max_topics, 0)

        entity_codes: list[str] = []
        for name, code in self._by_name.items():
            if name in normalized and code not in entity_codes:
                entity_codes.append(code)
        for entity in extract_entities(normalized):
            code = self._entity_code(entity)
            if code not in entity_codes:
                entity_codes.append(code)

        flags = detect_flags(normalized)
        zettel = Zettel(
            id=0,
            entities=entity_codes or [DEFAULT_ENTITY_CODE],
            topics=topics or ["note"],
            quote=normalized,
            weight=infer_weight(flags),
            emotions=detect_emotions(normalized),
            flags=flags,
        )
        document = AaakDocument(
            header=AaakHeader(
                version=1,
                wing=meta.wing,
                room=meta.room,
                date=meta.date,
                source=meta.source,
            ),
            body=[zettel],
            zettels=[zettel],
        )
        roundtrip = self.verify_roundtrip(text, document)
        return EncodeOutput(
            document=document,
            report=EncodeReport(
                topics_truncated=topics_truncated,
                key_sentence_truncated=False,
                coverage=roundtrip.coverage,
                lost_assertions=roundtrip.lost,
            ),
        )

    def decode(self, document: AaakDocument) -> str:
        """Expand each zettel back to text, one per line."""
        return "\n".join(self._decode_zettel(z) for z in document.zettel_lines())

    def verify_roundtrip(self, original: str, document: AaakDocument) -> RoundtripReport:
        """Check which sentences of ``original`` appear in the decoded document."""
        decoded = normalize_whitespace(self.decode(document)).lower()
        assertions = _split_assertions(original)
        if not assertions:
            return RoundtripReport(preserved=[], lost=[], coverage=1.0)

        preserved = [a for a in assertions if a.lower() in decoded]
        lost = [a for a in assertions if a.lower() not in decoded]
        return RoundtripReport(
            preserved=preserved,
            lost=lost,
            coverage=len(preserved) / len(assertions),
        )

    def _decode_zettel(self, zettel: Zettel) -> str:
        quote = zettel.quote
        for entity in zettel.entities:
            name = self._by_code.get(entity)
            if name is not None:
                quote = _replace_code(quote, entity, name)
        if not quote:
            return " ".join(self._by_code.get(entity, entity) for entity in zettel.entities)
        return quote

    def _entity_code(self, entity: str) -> str:
        return self._by_name.get(entity) or default_entity_code(entity)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and turn double quotes into single."""
    return " ".join(text.split()).replace('"', "'").strip()


def extract_entities(text: str) -> list[str]:
    """Capitalised ASCII words and CJK place/organisation names, first seen first."""
    entities: list[str] = []
    for segment in _text_segments(text):
        if segment.kind is _SegmentKind.ASCII_WORD:
            candidates = [segment.text] if _looks_like_ascii_entity(segment.text) else []
        else:
            candidates = _cjk_entities(segment.text)
        for candidate in candidates:
            if candidate not in entities:
                entities.append(candidate)
    return entities


def extract_topics(text: str) -> list[str]:
    """Lower-cased content words, without stop words or duplicates."""
    topics: list[str] = []
    for segment in _text_segments(text):
        if segment.kind is _SegmentKind.ASCII_WORD:
            token = segment.text.lower()
            candidates = [] if token in _TOPIC_STOP_WORDS else [token]
        else:
            candidates = _cjk_topics(segment.text)
        for candidate in candidates:
            if candidate not in topics:
                topics.append(candidate)
    return topics


def _detect(text: str, signals: tuple[tuple[str, str], ...], default: str) -> list[str]:
    lower = text.lower()
    found: list[str] = []
    for needle, code in signals:
        if needle in lower and code not in found:
            found.append(code)
    return found or [default]


def detect_flags(text: str) -> list[str]:
    """Category flags whose signal words occur in ``text``; CORE when none do."""
    return _detect(text, FLAG_SIGNALS, "CORE")


def detect_emotions(text: str) -> list[str]:
    """Emotion codes whose signal words occur in ``text``; the default when none do."""
    return _detect(text, EMOTION_SIGNALS, DEFAULT_EMOTION)


def infer_weight(flags: list[str]) -> int:
    """Star weight: 4 for decisions and pivots, 3 for technical, else 2."""
    if any(flag in ("DECISION", "PIVOT") for flag in flags):
        return 4
    if "TECHNICAL" in flags:
        return 3
    return 2


def default_entity_code(entity: str) -> str:
    """Three upper-case letters: the first ASCII letters, or a stable hash."""
    ascii_code = "".join(ch for ch in entity if ch.isascii() and ch.isalpha())[:3].upper()
    if len(ascii_code) >= 3:
        return ascii_code

    hashed = _stable_hash(entity)
    return "".join(chr(ord("A") + ((hashed >> (i * 5)) & 0x1F) % 26) for i in range(3))


def _stable_hash(value: str) -> int:
    hashed = 0
    for byte in value.encode("utf-8"):
        hashed = (hashed * 31 + byte) & 0xFFFF_FFFF_FFFF_FFFF
    return hashed


def _split_assertions(text: str) -> list[str]:
    pieces = (normalize_whitespace(piece) for piece in _ASSERTION_SPLIT.split(text))
    return [piece for piece in pieces if piece]


def _replace_code(quote: str, code: str, name: str) -> str:
    return _ASCII_ALNUM_RUN.sub(
        lambda match: name if match.group() == code else match.group(), quote
    )


def _is_cjk_ideograph(ch: str) -> bool:
    return (
        "\u4e00" <= ch <= "\u9fff"
        or "\u3400" <= ch <= "\u4dbf"
        or "\uf900" <= ch <= "\ufaff"
    )


def _char_kind(ch: str) -> _SegmentKind | None:
    if ch.isascii() and ch.isalnum():
        return _SegmentKind.ASCII_WORD
    if _is_cjk_ideograph(ch):
        return _SegmentKind.CJK
    return None


def _text_segments(text: str) -> Iterator[_Segment]:
    for kind, chars in groupby(text, key=_char_kind):
        if kind is not None:
            yield _Segment(kind, "".join(chars))


def _looks_like_ascii_entity(token: str) -> bool:
    return len(token) >= 2 and "A" <= token[0] <= "Z"


def _cjk_chunks(segment: str) -> Iterator[str]:
    """Runs of ideographs between particle, pronoun and connective characters."""
    for is_break, chars in groupby(segment, key=lambda ch: ch in _CJK_BREAK_CHARS):
        if not is_break:
            yield "".join(chars)


def _is_cjk_entity(chunk: str) -> bool:
    return len(chunk) >= 2 and any(
        chunk.endswith(suffix) and len(chunk) > len(suffix)
        for suffix in _CJK_ENTITY_SUFFIXES
    )


def _cjk_entities(segment: str) -> list[str]:
    entities: list[str] = []
    for chunk in _cjk_chunks(segment):
        if _is_cjk_entity(chunk) and chunk not in entities:
            entities.append(chunk)
    return entities


def _cjk_topics(segment: str) -> list[str]:
    topics: list[str] = []
    for chunk in _cjk_chunks(segment):
        if len(chunk) < 2 or _is_cjk_entity(chunk):
            continue
        words = [chunk] if len(chunk) <= 4 else [
            chunk[start : start + 2] for start in range(0, len(chunk) - 1, 2)
        ]
        for word in words:
            if word not in _CJK_FUNCTION_WORDS and word not in topics:
                topics.append(word)
    return topics