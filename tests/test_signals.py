import pytest

from mempal.aaak.signals import AaakSignals, analyze


def test_importance_stars_defaults_to_2_for_uncategorized_text():
    signals = analyze("weather update today")
    assert signals.importance_stars == 2
    assert "CORE" in signals.flags
    assert "DECISION" not in signals.flags


def test_empty_content_yields_sentinel_defaults():
    signals = analyze("")
    assert signals.entities == ["UNK"]
    assert signals.flags == ["CORE"]
    assert signals.emotions == ["determ"]
    assert signals.topics == []
    assert signals.importance_stars == 2


def test_whitespace_content_matches_empty_sentinel_behavior():
    signals = analyze("   \t\n  ")
    assert signals.entities == ["UNK"]
    assert signals.flags == ["CORE"]
    assert signals.emotions == ["determ"]
    assert signals.topics == []
    assert signals.importance_stars == 2


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   \t\n  ",
        "12345",
        "just a boring sentence",
        "Decision: use Arc<Mutex<>>",
    ],
)
def test_analyze_entities_never_empty_after_code_mapping(text):
    signals = analyze(text)
    assert signals.entities
    first = signals.entities[0]
    assert 3 <= len(first) <= 4
    assert all("A" <= ch <= "Z" for ch in first)


def test_decision_and_technical_signals():
    signals = analyze("Kai decided to deploy the API")
    assert signals.entities == ["KAI", "API"]
    assert signals.flags == ["DECISION", "TECHNICAL"]
    assert signals.emotions == ["determ"]
    assert signals.importance_stars == 4
    assert "the" not in signals.topics
    assert signals.topics[0] == "kai"


def test_technical_only_weight_is_three():
    signals = analyze("the server config")
    assert signals.flags == ["TECHNICAL"]
    assert signals.importance_stars == 3


def test_entity_codes_are_deduplicated():
    signals = analyze("Kai and Kaiser")
    assert signals.entities == ["KAI"]


def test_result_is_signals_record_with_topics_untruncated():
    signals = analyze("alpha beta gamma delta epsilon")
    assert isinstance(signals, AaakSignals)
    assert signals.topics == ["alpha", "beta", "gamma", "delta", "epsilon"]