import asyncio

import pytest
from flask_caching import Cache

from namescore.adjustment import DEFAULT_HOLISTIC_RATIONALE
from namescore.llm import DEFAULT_DAILY_INSIGHT, NameScoreAnalyst

from conftest import make_analyst


@pytest.fixture(autouse=True)
def offline_analyst(flask_app, monkeypatch):
    monkeypatch.setattr(flask_app, "analyst", NameScoreAnalyst())


def test_home(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_unknown_route(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_calculate(client):
    response = client.post("/calculate", json={"name": "Marie Anne Curie", "birthdate": "1867-11-07"})
    assert response.status_code == 200
    data = response.get_json()
    assert data["score"] == 82
    assert data["score_label"] == "Excellent"
    assert data["coreNumbers"]["soulUrgeNumber"] == 11
    assert data["breakdown"]["life_path"] == 18


@pytest.mark.parametrize("payload", [{"name": ""}, {"name": "   "}, {"birthdate": "1990-05-15"}, {"name": 12}])
def test_calculate_rejects_missing_name(client, payload):
    response = client.post("/calculate", json=payload)
    assert response.status_code == 400
    assert "name" in response.get_json()["error"]


def test_calculate_requires_json_object(client):
    assert client.post("/calculate", data="name=Anna").status_code == 400
    assert client.post("/calculate", json=["Anna"]).status_code == 400


def test_calculate_rejects_markup(client):
    response = client.post("/calculate", json={"name": "<script>alert(1)</script>"})
    assert response.status_code == 400


def test_analyze_name_offline_uses_base_score(client):
    response = client.post("/analyze_name", json={"name": "Marie Anne Curie", "birthdate": "1867-11-07"})
    assert response.status_code == 200
    data = response.get_json()
    assert data["score"] == data["base_score"] == 82
    assert data["suggestions"] == []
    assert data["coreNumbers"]["destinyNumber"] == 1


def test_analyze_name_with_model(client, flask_app, monkeypatch):
    holistic = {"holistic_score": 60, "holistic_rationale": "Too plain.", "short_rationale": "Reserved."}
    suggestions = [{"suggested_name": "Marie Curie", "new_score": 80, "reason": "Brighter."},
                   {"suggested_name": "M. Curie", "new_score": 70}]
    monkeypatch.setattr(flask_app, "analyst", make_analyst(holistic, suggestions))
    response = client.post("/analyze_name", json={"name": "Marie Anne Curie", "birthdate": "1867-11-07"})
    data = response.get_json()
    assert data["score"] == 75
    assert [s["suggested_name"] for s in data["suggestions"]] == ["Marie Curie"]


def test_analyze_name_rejects_missing_name(client):
    response = client.post("/analyze_name", json={"birthdate": "1867-11-07"})
    assert response.status_code == 400


def test_analyze_compatibility(client):
    response = client.post("/analyze_compatibility", json={
        "name1": "Marie Anne Curie", "birthdate1": "1867-11-07",
        "name2": "Marie Anne Curie", "birthdate2": "1867-11-07",
    })
    assert response.status_code == 200
    data = response.get_json()
    assert data["score"] == 100
    assert data["names"] == ["Marie Anne Curie", "Marie Anne Curie"]
    assert data["title"]


def test_analyze_compatibility_requires_both_names(client):
    response = client.post("/analyze_compatibility", json={"name1": "Anna"})
    assert response.status_code == 400
    assert "name2" in response.get_json()["error"]


def test_daily_insight_from_name(client):
    response = client.post("/daily_insight", json={"name": "Marie"})
    assert response.status_code == 200
    data = response.get_json()
    assert data["insight"] == DEFAULT_DAILY_INSIGHT
    assert data["universal_day_number"] in set(range(1, 10)) | {11, 22, 33}


def test_daily_insight_from_core_numbers(client):
    response = client.post("/daily_insight", json={
        "user_name": "Marie",
        "core_numbers": {"lifePathNumber": 4, "destinyNumber": 1, "soulUrgeNumber": 11, "personalityNumber": 8},
    })
    assert response.status_code == 200


def test_daily_insight_rejects_bad_core_numbers(client):
    response = client.post("/daily_insight", json={"core_numbers": {"destinyNumber": "many"}})
    assert response.status_code == 400


def test_generate_pdf_report(client):
    response = client.post("/generate_pdf_report", json={"name": "Marie Anne Curie", "birthdate": "1867-11-07"})
    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")
    assert "Numerology_Report_Marie_Anne_Curie.pdf" in response.headers["Content-Disposition"]


def test_generate_pdf_report_requires_name(client):
    assert client.post("/generate_pdf_report", json={"name": ""}).status_code == 400


def test_daily_insight_rejects_unreduced_core_numbers(client):
    response = client.post("/daily_insight", json={
        "core_numbers": {"lifePathNumber": 77, "destinyNumber": 13, "soulUrgeNumber": -2, "personalityNumber": 8},
    })
    assert response.status_code == 400


@pytest.mark.parametrize("name", ["Drop Anna", "Select Smith", "Delia Update", "Insert Coin"])
def test_names_resembling_sql_keywords_are_accepted(client, name):
    assert client.post("/calculate", json={"name": name}).status_code == 200


@pytest.mark.parametrize("name", ["x'; DROP TABLE users; --", "SELECT * FROM users", "anna; delete from names"])
def test_sql_statements_are_rejected(client, name):
    assert client.post("/calculate", json={"name": name}).status_code == 400


MODEL_HOLISTIC = {"holistic_score": 66, "holistic_rationale": "Bright and balanced.", "short_rationale": "Warm."}


@pytest.fixture
def simple_cache(flask_app, monkeypatch):
    cache = Cache(flask_app.app, config={"CACHE_TYPE": "SimpleCache"})
    monkeypatch.setattr(flask_app, "cache", cache)
    with flask_app.app.app_context():
        yield cache


def analyze(flask_app, name, birthdate=None):
    return asyncio.run(flask_app.run_name_analysis(name, birthdate, None, None))


def test_cache_keys_do_not_collide(flask_app, simple_cache, monkeypatch):
    monkeypatch.setattr(flask_app, "analyst", make_analyst(MODEL_HOLISTIC, "[]"))
    joined = analyze(flask_app, "Anna_Bob")
    split = analyze(flask_app, "Anna", "Bob_None")
    assert joined["coreNumbers"]["destinyNumber"] == 22
    assert split["coreNumbers"]["destinyNumber"] == 3


def test_model_analysis_is_cached(flask_app, simple_cache, monkeypatch):
    monkeypatch.setattr(flask_app, "analyst", make_analyst(MODEL_HOLISTIC, "[]"))
    first = analyze(flask_app, "Anna")
    monkeypatch.setattr(flask_app, "analyst", NameScoreAnalyst())
    assert analyze(flask_app, "Anna") == first
    assert first["holistic_rationale"] == "Bright and balanced."


def test_fallback_analysis_is_not_cached(flask_app, simple_cache, monkeypatch):
    monkeypatch.setattr(flask_app, "analyst", make_analyst("not json", "not json"))
    assert analyze(flask_app, "Anna")["holistic_rationale"] == DEFAULT_HOLISTIC_RATIONALE
    monkeypatch.setattr(flask_app, "analyst", make_analyst(MODEL_HOLISTIC, "[]"))
    retried = analyze(flask_app, "Anna")
    assert retried["holistic_rationale"] == "Bright and balanced."
    assert retried["score"] == 66
