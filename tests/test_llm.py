import asyncio
import datetime

import pytest

from namescore.llm import DEFAULT_DAILY_INSIGHT, LLMManager, NameScoreAnalyst
from namescore.adjustment import DEFAULT_COMPATIBILITY_INSIGHT, DEFAULT_SHORT_RATIONALE
from namescore.numerology import InvalidArgument, calculate_scores
from namescore.schemas import CoreNumbers

from conftest import make_analyst

HOLISTIC = {
    "holistic_score": 95,
    "holistic_rationale": "Memorable and melodic.",
    "short_rationale": "A name with presence.",
    "positive_traits": ["Curious", "Determined"],
    "challenges": ["Restless"],
}
SUGGESTIONS = {
    "suggestions": [
        {"suggested_name": "Marie Ann Curie", "new_score": 88, "reason": "Close but lower."},
        {"suggested_name": "Mari Anne Curie", "new_score": 92, "reason": "Lifts the destiny number."},
        {"suggested_name": "Marie Anna Curie", "new_score": 89, "reason": "Equal."},
        {"suggested_name": "Maree Anne Curie", "new_score": 97, "reason": "Strong master vibration."},
    ]
}


def run(coro):
    return asyncio.run(coro)


def test_manager_without_api_key_is_unavailable(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    manager = LLMManager()
    assert not manager.available
    analyst = NameScoreAnalyst.from_manager(manager)
    assert analyst.analytical_llm is None


def test_analyze_name_clamps_and_filters():
    result = run(make_analyst(HOLISTIC, SUGGESTIONS).analyze_name("Marie Anne Curie", "1867-11-07", "Career Growth"))
    assert result.base_score == 82
    assert result.score == 89
    assert result.score_label == "Excellent"
    assert result.short_rationale == "A name with presence."
    assert result.positive_traits == ["Curious", "Determined"]
    # Suggestions must beat the adjusted score, not just the base score.
    assert [s.new_score for s in result.suggestions] == [97, 92]


def test_analyze_name_accepts_fenced_json():
    fenced = '```json\n{"holistic_score": 80, "holistic_rationale": "Fine.", "short_rationale": "Solid."}\n```'
    result = run(make_analyst(fenced, "[]").analyze_name("Marie Anne Curie", "1867-11-07"))
    assert result.score == 80
    assert result.short_rationale == "Solid."
    assert result.suggestions == []


def test_unparseable_reply_falls_back_to_base_score():
    result = run(make_analyst("I think this name is lovely!", "nope").analyze_name("Marie Anne Curie", "1867-11-07"))
    assert result.score == result.base_score == 82
    assert result.short_rationale == DEFAULT_SHORT_RATIONALE
    assert result.suggestions == []


def test_analysis_without_model_uses_base_score():
    result = run(NameScoreAnalyst().analyze_name("AI"))
    base = calculate_scores("AI")
    assert result.score == base.score
    assert result.breakdown == base.breakdown
    assert result.core_numbers == base.core_numbers
    assert result.suggestions == []


@pytest.mark.parametrize("name", ["", "   ", None])
def test_analyze_name_rejects_missing_name(name):
    with pytest.raises(InvalidArgument):
        run(make_analyst(HOLISTIC, SUGGESTIONS).analyze_name(name))


def test_analyze_compatibility():
    insight = {"title": "Twin Flames", "strengths": "Shared drive.", "challenges": "Stubbornness.", "summary": "Bright."}
    result = run(make_analyst(insight).analyze_compatibility("Marie Anne Curie", "1867-11-07", "Marie Anne Curie", "1867-11-07"))
    assert result.score == 100
    assert result.names == ("Marie Anne Curie", "Marie Anne Curie")
    assert result.title == "Twin Flames"


def test_compatibility_falls_back_to_default_texts():
    result = run(make_analyst("not json").analyze_compatibility("AI", None, "ai", None))
    assert result.score == 75
    assert result.title == DEFAULT_COMPATIBILITY_INSIGHT["title"]
    assert result.summary == DEFAULT_COMPATIBILITY_INSIGHT["summary"]


def test_compatibility_rejects_missing_second_name():
    with pytest.raises(InvalidArgument):
        run(NameScoreAnalyst().analyze_compatibility("Anna", None, "", None))


def test_daily_insight():
    core = CoreNumbers(destinyNumber=1, soulUrgeNumber=11, personalityNumber=8)
    text = run(make_analyst("  Lead with your curiosity today.  ").daily_insight("Marie", core, datetime.date(2026, 10, 17)))
    assert text == "Lead with your curiosity today."


def test_daily_insight_without_model():
    core = CoreNumbers(destinyNumber=1, soulUrgeNumber=11, personalityNumber=8)
    assert run(NameScoreAnalyst().daily_insight("Marie", core)) == DEFAULT_DAILY_INSIGHT
