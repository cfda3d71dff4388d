from mempal.aaak.model import AaakDocument
from mempal.aaak.parse import ALLOWED_FLAGS
from mempal.aaak.spec import _unique_flag_names, generate_spec


def _example_block(spec: str) -> str:
    start = spec.find("V1|")
    assert start >= 0
    end = spec.find("\n\n", start)
    return spec[start:] if end < 0 else spec[start:end]


def test_generate_spec_contains_all_flags():
    spec = generate_spec()
    for flag in ALLOWED_FLAGS:
        assert flag in spec


def test_generate_spec_contains_live_example():
    spec = generate_spec()
    assert "V1|myapp|auth|" in spec
    document = AaakDocument.parse(_example_block(spec))
    assert document.header.wing == "myapp"
    assert document.header.room == "auth"
    assert document.header.date == "2026-04-08"
    assert document.header.source == "readme"
    assert len(document.zettel_lines()) == 1


def test_live_example_zettel_content():
    document = AaakDocument.parse(_example_block(generate_spec()))
    zettel = document.zettel_lines()[0]
    assert zettel.entities[:3] == ["KAI", "CLE", "AUT"]
    assert "DECISION" in zettel.flags
    assert zettel.weight == 4
    assert zettel.quote == "Kai recommended Clerk over Auth0 based on pricing and DX."


def test_generate_spec_contains_emotion_codes():
    spec = generate_spec()
    assert "determ" in spec
    assert "anx" in spec
    assert "joy" in spec


def test_emotion_line_lists_unique_codes_in_table_order():
    spec = generate_spec()
    line = next(l for l in spec.splitlines() if l.startswith("EMOTIONS: "))
    codes = line.removeprefix("EMOTIONS: ").split(", ")
    assert codes[:4] == ["determ", "convict", "anx", "excite"]
    assert len(codes) == len(set(codes))


def test_flags_line_matches_allowed_flags():
    spec = generate_spec()
    assert "FLAGS: DECISION, ORIGIN, CORE, PIVOT, TECHNICAL, SENSITIVE" in spec


def test_spec_starts_with_title_and_ends_with_reading_hint():
    spec = generate_spec()
    assert spec.startswith(
        "AAAK: compressed memory format (V1). Readable by any LLM without decoding."
    )
    assert spec.endswith(
        "Read naturally: expand codes, stars=importance, emotions=mindset, flags=category."
    )
    assert "Header: V{version}|{wing}|{room}|{date}|{source}" in spec


def test_unique_flag_names_matches_allowed_flags():
    dynamic = _unique_flag_names()
    for flag in ALLOWED_FLAGS:
        assert flag in dynamic
    assert len(dynamic.split(", ")) == len(ALLOWED_FLAGS)