"""The AAAK format description, built from the codec's own tables."""

from __future__ import annotations

from .codec import EMOTION_SIGNALS, FLAG_SIGNALS, AaakCodec
from .model import AaakMeta
from .parse import ALLOWED_FLAGS

_SPEC_TEMPLATE = """\
AAAK: compressed memory format (V1). Readable by any LLM without decoding.

FORMAT:
  Header: V{{version}}|{{wing}}|{{room}}|{{date}}|{{source}}
  Zettel: {{id}}:{{ENTITIES}}|{{topics}}|"{{quote}}"|{{stars}}|{{emotions}}|{{FLAGS}}
  Tunnel: T:{{left}}<->{{right}}|{{label}}
  Arc:    ARC:{{emo1}}->{{emo2}}->{{emo3}}

ENTITIES: 3-letter uppercase codes (KAI=Kai, CLK=Clerk).
STARS: \u2605 to \u2605\u2605\u2605\u2605\u2605 (1-5 importance).
EMOTIONS: {emotions}
FLAGS: {flags}

EXAMPLE:
{example}

Read naturally: expand codes, stars=importance, emotions=mindset, flags=category."""


def generate_spec() -> str:
    """Describe the format; codes, flags and the example come from live tables."""
    return _SPEC_TEMPLATE.format(
        emotions=_unique_emotion_codes(),
        flags=", ".join(ALLOWED_FLAGS),
        example=_live_example(),
    )


def _unique_codes(signals: tuple[tuple[str, str], ...]) -> str:
    return ", ".join(dict.fromkeys(code for _, code in signals))


def _unique_emotion_codes() -> str:
    return _unique_codes(EMOTION_SIGNALS)


def _unique_flag_names() -> str:
    return _unique_codes(FLAG_SIGNALS)


def _live_example() -> str:
    output = AaakCodec().encode(
        "Kai recommended Clerk over Auth0 based on pricing and DX.",
        AaakMeta(wing="myapp", room="auth", date="2026-04-08", source="readme"),
    )
    return str(output.document)