import datetime

from namescore.numerology import calculate_scores
from namescore.reports import create_analysis_pdf
from namescore.schemas import AnalysisResult, NameSuggestion


def make_result(**overrides):
    base = calculate_scores("Marie Anne Curie", "1867-11-07")
    fields = dict(
        score=85,
        base_score=base.score,
        score_label="Excellent",
        breakdown=base.breakdown,
        core_numbers=base.core_numbers,
        short_rationale="A name with presence & <poise>.",
        holistic_rationale="Melodic and memorable.",
        positive_traits=["Curious", "Determined"],
        challenges=["Restless"],
        suggestions=[NameSuggestion(suggested_name="Maree Anne Curie", new_score=91, reason="Master vibration.")],
    )
    fields.update(overrides)
    return AnalysisResult(**fields)


def test_report_is_a_pdf():
    pdf = create_analysis_pdf(make_result(), "Marie Anne Curie", datetime.date(2026, 10, 17))
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


def test_report_with_minimal_result():
    base = calculate_scores("AI")
    result = make_result(score=base.score, base_score=base.score, breakdown=base.breakdown,
                         core_numbers=base.core_numbers, positive_traits=[], challenges=[], suggestions=[])
    assert create_analysis_pdf(result, "A & I <3").startswith(b"%PDF")
