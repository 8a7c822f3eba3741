import asyncio
import json

import httpx
import pytest

from internmatch.core.config import settings
from internmatch.services import match_scoring as ms


def _request(context=None):
    return {
        "student": {
            "name": "Asha Rao",
            "university": "IIT Delhi",
            "major": "Computer Science",
            "graduation_year": 2026,
            "gpa": None,
            "skills": ["Python", "SQL"],
            "interests": ["Data"],
            "location": "Delhi",
            "resume_text": None,
        },
        "internship": {
            "title": "Data Intern",
            "description": "Build dashboards.",
            "requirements": ["Comfortable with SQL"],
            "skills": ["SQL", "Figma"],
            "location": "Bengaluru",
            "duration": "3 months",
            "stipend": None,
            "company": {"name": "Acme", "industry": "Software", "description": None},
        },
        "context": context,
    }


def _model_reply() -> dict:
    return {
        "overallMatch": 82,
        "confidence": 74,
        "keyStrengths": ["SQL experience", "Analytics coursework"],
        "potentialConcerns": ["No design tooling"],
        "skillGaps": ["Figma"],
        "careerImpact": "Strong first step into analytics.",
        "employerBenefits": ["Ready to query data on day one"],
        "actionableAdvice": ["Complete a Figma primer"],
        "breakdown": {
            "skillsMatch": 80,
            "experienceMatch": 60,
            "locationMatch": 70,
            "cultureMatch": 75,
            "careerFitMatch": 90,
        },
    }


def _use_transport(monkeypatch, handler):
    monkeypatch.setattr(
        ms,
        "_build_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _envelope(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def test_live_reply_is_parsed_from_surrounding_prose(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return _envelope("Sure! Here is the analysis:\n" + json.dumps(_model_reply()) + "\nGood luck.")

    _use_transport(monkeypatch, handler)
    analysis = asyncio.run(ms.analyze_match(_request()))

    assert analysis["overall_match"] == 82
    assert analysis["skill_gaps"] == ["Figma"]
    assert analysis["breakdown"]["career_fit_match"] == 90
    assert seen["headers"]["Authorization"] == "Bearer test-key"
    assert seen["headers"]["X-Title"] == settings.llm_app_title
    assert seen["body"]["max_tokens"] == settings.match_max_tokens
    assert seen["body"]["messages"][0]["role"] == "system"


def test_upstream_timeout_returns_fallback(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    _use_transport(monkeypatch, handler)
    assert asyncio.run(ms.analyze_match(_request())) == ms.fallback_analysis()


def test_slow_upstream_is_cut_off_and_falls_back(monkeypatch):
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return _envelope(json.dumps(_model_reply()))

    monkeypatch.setattr(settings, "match_timeout_seconds", 0.05)
    _use_transport(monkeypatch, handler)
    analysis = asyncio.run(ms.analyze_match(_request()))

    assert analysis["overall_match"] == 50
    assert analysis["confidence"] == 30
    assert set(analysis["breakdown"].values()) == {50}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, text="bad key"),
        httpx.Response(200, json={"choices": []}),
        httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]}),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
def test_bad_upstream_replies_map_to_fallback(monkeypatch, response):
    _use_transport(monkeypatch, lambda request: response)
    assert asyncio.run(ms.analyze_match(_request())) == ms.fallback_analysis()


def test_server_error_is_retried_once(monkeypatch):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503, text="busy")
        return _envelope(json.dumps(_model_reply()))

    _use_transport(monkeypatch, handler)
    analysis = asyncio.run(ms.analyze_match(_request()))

    assert calls["count"] == 2
    assert analysis["overall_match"] == 82


def test_persistent_rate_limit_stops_after_one_retry(monkeypatch):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(429, text="slow down")

    _use_transport(monkeypatch, handler)

    assert asyncio.run(ms.analyze_match(_request())) == ms.fallback_analysis()
    assert calls["count"] == 2


def test_missing_api_key_falls_back_without_network(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    _use_transport(monkeypatch, handler)
    assert asyncio.run(ms.analyze_match(_request())) == ms.fallback_analysis()


@pytest.mark.parametrize("missing", ["overallMatch", "confidence", "keyStrengths", "careerImpact", "breakdown"])
def test_reply_without_mandatory_field_falls_back(monkeypatch, missing):
    reply = _model_reply()
    del reply[missing]
    _use_transport(monkeypatch, lambda request: _envelope(json.dumps(reply)))
    assert asyncio.run(ms.analyze_match(_request())) == ms.fallback_analysis()


def test_unparsable_reply_falls_back(monkeypatch):
    _use_transport(monkeypatch, lambda request: _envelope("I cannot answer that {not json}"))
    assert asyncio.run(ms.analyze_match(_request())) == ms.fallback_analysis()


def test_optional_lists_and_null_breakdown_are_defaulted():
    reply = _model_reply()
    del reply["potentialConcerns"]
    reply["employerBenefits"] = None
    reply["breakdown"] = None

    analysis = ms.parse_match_response(json.dumps(reply))

    assert analysis["potential_concerns"] == []
    assert analysis["employer_benefits"] == []
    assert analysis["breakdown"] == {
        "skills_match": 50,
        "experience_match": 50,
        "location_match": 50,
        "culture_match": 50,
        "career_fit_match": 50,
    }


def test_scores_are_clamped_to_integer_percentages():
    reply = _model_reply()
    reply["overallMatch"] = 130
    reply["confidence"] = "64.6"
    reply["breakdown"]["skillsMatch"] = -5
    reply["breakdown"]["cultureMatch"] = "n/a"

    analysis = ms.parse_match_response(json.dumps(reply))

    assert analysis["overall_match"] == 100
    assert analysis["confidence"] == 65
    assert analysis["breakdown"]["skills_match"] == 0
    assert analysis["breakdown"]["culture_match"] == 50
    assert all(isinstance(value, int) for value in analysis["breakdown"].values())


def test_non_numeric_overall_score_is_rejected():
    reply = _model_reply()
    reply["overallMatch"] = "great"
    with pytest.raises(ValueError):
        ms.parse_match_response(json.dumps(reply))


def test_context_section_only_when_hints_given():
    plain = ms.build_match_prompt(_request())
    hinted = ms.build_match_prompt(
        _request(context={"market_trends": ["GenAI"], "similar_successful_matches": [], "career_goals": "Analytics"})
    )

    assert "CONTEXT:" not in plain
    assert "CONTEXT:" in hinted
    assert "- Market Trends: GenAI" in hinted
    assert "- GPA: Not provided" in plain
    assert "RESUME ANALYSIS" not in plain


def test_prompt_keeps_zero_valued_optional_fields():
    request = _request()
    request["student"]["gpa"] = 0
    request["internship"]["stipend"] = 0

    prompt = ms.build_match_prompt(request)

    assert "- GPA: 0\n" in prompt
    assert "- Stipend: 0\n" in prompt
    assert "- Stipend: Not specified" in ms.build_match_prompt(_request())


def test_fallback_records_are_independent_copies():
    first = ms.fallback_analysis()
    first["key_strengths"].append("mutated")
    assert ms.fallback_analysis()["key_strengths"] == ["Profile review needed"]
