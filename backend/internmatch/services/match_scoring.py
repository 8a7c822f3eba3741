from __future__ import annotations

import asyncio
import copy
import json
import logging
import math
from typing import Any

import httpx

from internmatch.core.config import settings

logger = logging.getLogger(__name__)

SUPPORTED_LLM_PROVIDERS = {"openrouter", "openai", "groq"}
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
LLM_RETRY_DELAY_SECONDS = 1.5
REQUIRED_RESPONSE_FIELDS = ("overallMatch", "confidence", "keyStrengths", "careerImpact", "breakdown")
LIST_FIELDS = {
    "keyStrengths": "key_strengths",
    "potentialConcerns": "potential_concerns",
    "skillGaps": "skill_gaps",
    "employerBenefits": "employer_benefits",
    "actionableAdvice": "actionable_advice",
}
BREAKDOWN_FIELDS = {
    "skillsMatch": "skills_match",
    "experienceMatch": "experience_match",
    "locationMatch": "location_match",
    "cultureMatch": "culture_match",
    "careerFitMatch": "career_fit_match",
}
NEUTRAL_SUBSCORE = 50

SYSTEM_PROMPT = (
    "You are an expert career counselor and talent acquisition specialist with deep "
    "knowledge of internship matching, skill assessment, and career development. "
    "Provide detailed, actionable insights based on comprehensive analysis."
)

FALLBACK_ANALYSIS: dict[str, Any] = {
    "overall_match": 50,
    "confidence": 30,
    "key_strengths": ["Profile review needed"],
    "potential_concerns": ["AI analysis temporarily unavailable"],
    "skill_gaps": [],
    "career_impact": "Analysis will be available once AI service is restored.",
    "employer_benefits": ["Candidate shows potential"],
    "actionable_advice": ["Complete profile for better matching"],
    "breakdown": {field: NEUTRAL_SUBSCORE for field in BREAKDOWN_FIELDS.values()},
}

FAILED_ANALYSIS: dict[str, Any] = {
    "overall_match": 0,
    "confidence": 0,
    "key_strengths": [],
    "potential_concerns": ["Analysis failed"],
    "skill_gaps": [],
    "career_impact": "Analysis unavailable",
    "employer_benefits": [],
    "actionable_advice": [],
    "breakdown": {field: 0 for field in BREAKDOWN_FIELDS.values()},
}


def fallback_analysis() -> dict[str, Any]:
    """Low-confidence record returned whenever live scoring cannot complete."""
    return copy.deepcopy(FALLBACK_ANALYSIS)


def failed_analysis() -> dict[str, Any]:
    """Zero-score record substituted for a single failed item in a batch."""
    return copy.deepcopy(FAILED_ANALYSIS)


def _normalize_provider() -> str:
    provider = (settings.llm_provider or "openrouter").strip().lower()
    if provider not in SUPPORTED_LLM_PROVIDERS:
        return "openrouter"
    return provider


def _provider_config() -> tuple[str, str | None, str, str]:
    provider = _normalize_provider()
    if provider == "openai":
        return (
            provider,
            settings.openai_api_key,
            settings.openai_model,
            settings.openai_api_base.rstrip("/"),
        )
    if provider == "groq":
        return (
            provider,
            settings.groq_api_key,
            settings.groq_model,
            settings.groq_api_base.rstrip("/"),
        )
    return (
        "openrouter",
        settings.openrouter_api_key,
        settings.openrouter_model,
        settings.openrouter_api_base.rstrip("/"),
    )


def ai_is_configured() -> bool:
    _, api_key, model, _ = _provider_config()
    return bool(settings.match_scoring_mode == "ai" and api_key and model)


def get_active_ai_provider() -> str:
    return _provider_config()[0]


def get_active_ai_model() -> str:
    return _provider_config()[2]


def _build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.match_timeout_seconds)


def _first_choice_content(data: Any) -> str | None:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content


async def _call_llm(system_prompt: str, user_prompt: str) -> str:
    provider, api_key, model, api_base = _provider_config()
    if not api_key:
        raise RuntimeError(f"{provider} API key is not configured")
    if not model:
        raise RuntimeError(f"No model configured for provider '{provider}'")

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    if provider == "openrouter":
        headers["HTTP-Referer"] = settings.llm_referer
        headers["X-Title"] = settings.llm_app_title
    body = {
        "model": model,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        "temperature": settings.match_temperature,
        "max_tokens": settings.match_max_tokens,
    }

    async with _build_client() as client:
        for attempt in range(2):
            try:
                response = await client.post(
                    f"{api_base}/chat/completions",
                    headers=headers,
                    json=body,
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status in RETRYABLE_STATUS_CODES and attempt == 0:
                    await asyncio.sleep(LLM_RETRY_DELAY_SECONDS)
                    continue
                raise RuntimeError(
                    f"LLM API error ({status}): {exc.response.text[:500]}"
                ) from exc
            except httpx.HTTPError as exc:
                raise RuntimeError(f"LLM request failed: {exc}") from exc
            except ValueError as exc:
                raise RuntimeError("LLM response body is not JSON") from exc

            content = _first_choice_content(data)
            if content is None:
                raise RuntimeError("No content received from AI service")
            return content


def _or_default(value: Any, default: str) -> Any:
    return default if value is None else value


def _bullets(values: list[str], separator: str = ", ") -> str:
    return separator.join(values) if values else "None listed"


def build_match_prompt(request: dict[str, Any]) -> str:
    student = request["student"]
    internship = request["internship"]
    company = internship.get("company") or {}
    context = request.get("context")

    sections = [
        "Analyze this student-internship match comprehensively and provide detailed insights:",
        "",
        "STUDENT PROFILE:",
        f"- Name: {student['name']}",
        f"- University: {student['university']}",
        f"- Major: {student['major']}",
        f"- Graduation Year: {_or_default(student.get('graduation_year'), 'Not provided')}",
        f"- GPA: {_or_default(student.get('gpa'), 'Not provided')}",
        f"- Location: {student.get('location') or 'Not specified'}",
        f"- Skills: {_bullets(student.get('skills') or [])}",
        f"- Interests: {_bullets(student.get('interests') or [])}",
    ]
    if student.get("resume_text") is not None:
        sections += ["", "RESUME ANALYSIS:", student["resume_text"]]

    sections += [
        "",
        "INTERNSHIP DETAILS:",
        f"- Title: {internship['title']}",
        f"- Company: {company.get('name') or 'Unknown company'} ({company.get('industry') or 'Not specified'})",
        f"- Location: {internship.get('location') or 'Not specified'}",
        f"- Duration: {internship.get('duration') or 'Not specified'}",
        f"- Stipend: {_or_default(internship.get('stipend'), 'Not specified')}",
        "",
        "Job Description:",
        internship["description"],
        "",
        "Requirements:",
        _bullets(internship.get("requirements") or [], separator="\n"),
        "",
        "Required Skills:",
        _bullets(internship.get("skills") or []),
        "",
        "Company Background:",
        _or_default(company.get("description"), "Not provided"),
    ]
    if context:
        sections += [
            "",
            "CONTEXT:",
            f"- Market Trends: {_bullets(context.get('market_trends') or [])}",
            f"- Similar Successful Matches: {_bullets(context.get('similar_successful_matches') or [])}",
            f"- Career Goals: {_or_default(context.get('career_goals'), 'Not specified')}",
        ]

    sections += [
        "",
        "Provide a comprehensive analysis as a single JSON object with keys:",
        "overallMatch (integer 0-100), confidence (integer 0-100),",
        "keyStrengths (array of strings), potentialConcerns (array of strings),",
        "skillGaps (array of strings), careerImpact (string),",
        "employerBenefits (array of strings), actionableAdvice (array of strings),",
        "breakdown (object with integer 0-100 values for skillsMatch, experienceMatch,",
        "locationMatch, cultureMatch, careerFitMatch).",
        "",
        "Analysis Guidelines:",
        "1. Consider both explicit skills and transferable skills from resume",
        "2. Evaluate growth potential and learning opportunities",
        "3. Assess cultural fit based on company industry and student background",
        "4. Provide specific, actionable advice for improvement",
        "5. Consider geographic and timing factors",
        "6. Be honest about potential challenges while highlighting opportunities",
        "7. Focus on mutual benefits for both student and employer",
        "",
        "Return ONLY the JSON response with no additional text.",
    ]
    return "\n".join(sections)


def _extract_json_object(text: str) -> dict[str, Any] | None:
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)
    return None


def _score(value: Any, default: int | None = None) -> int:
    try:
        if isinstance(value, bool):
            raise TypeError("boolean is not a score")
        number = float(value)
        if math.isnan(number) or math.isinf(number):
            raise ValueError("score is not finite")
    except (TypeError, ValueError):
        if default is None:
            raise ValueError(f"Invalid score value: {value!r}")
        return default
    return max(0, min(100, int(round(number))))


def _string_items(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def normalize_analysis(parsed: dict[str, Any]) -> dict[str, Any]:
    breakdown = parsed.get("breakdown")
    if not isinstance(breakdown, dict):
        breakdown = {}
    lists = {target: _string_items(parsed.get(source)) for source, target in LIST_FIELDS.items()}
    return {
        "overall_match": _score(parsed.get("overallMatch")),
        "confidence": _score(parsed.get("confidence")),
        "key_strengths": lists["key_strengths"],
        "potential_concerns": lists["potential_concerns"],
        "skill_gaps": lists["skill_gaps"],
        "career_impact": str(parsed.get("careerImpact") or "").strip(),
        "employer_benefits": lists["employer_benefits"],
        "actionable_advice": lists["actionable_advice"],
        "breakdown": {
            target: _score(breakdown.get(source), default=NEUTRAL_SUBSCORE)
            for source, target in BREAKDOWN_FIELDS.items()
        },
    }


def parse_match_response(content: str) -> dict[str, Any]:
    """Pull the first JSON object out of a model reply and validate it.

    Raises ValueError when no object is found, a mandatory key is missing, or
    the headline scores are not numeric.
    """
    parsed = _extract_json_object(content or "")
    if parsed is None:
        raise ValueError("No JSON object found in AI response")
    missing = [field for field in REQUIRED_RESPONSE_FIELDS if field not in parsed]
    if missing:
        raise ValueError(f"AI response missing required fields: {', '.join(missing)}")
    return normalize_analysis(parsed)


async def analyze_match(request: dict[str, Any]) -> dict[str, Any]:
    prompt = build_match_prompt(request)
    try:
        content = await asyncio.wait_for(
            _call_llm(SYSTEM_PROMPT, prompt),
            timeout=settings.match_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "AI match analysis timed out after %s seconds", settings.match_timeout_seconds
        )
        return fallback_analysis()
    except Exception as exc:
        logger.warning("AI match analysis unavailable: %s", exc)
        return fallback_analysis()

    try:
        return parse_match_response(content)
    except ValueError as exc:
        logger.warning("Failed to parse AI match response: %s", exc)
        return fallback_analysis()


async def analyze_batch(requests: list[tuple[str, dict[str, Any]]]) -> list[tuple[str, dict[str, Any]]]:
    """Score every (identifier, request) pair concurrently.

    Results keep input order. At most ``settings.match_concurrency`` upstream
    calls are in flight at once, and an item whose analysis raises gets the
    zero-score failure record without affecting its siblings.
    """
    semaphore = asyncio.Semaphore(max(1, settings.match_concurrency))

    async def _run(subject_id: str, request: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        async with semaphore:
            try:
                analysis = await analyze_match(request)
            except Exception:
                logger.exception("Match analysis failed for %s", subject_id)
                analysis = failed_analysis()
        return subject_id, analysis

    return list(await asyncio.gather(*(_run(subject_id, request) for subject_id, request in requests)))


def _sorted_by_score(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(rows, key=lambda row: row["overall_match"], reverse=True)


async def analyze_candidates(
    internship: dict[str, Any],
    students: list[tuple[str, dict[str, Any]]],
) -> list[dict[str, Any]]:
    requests = [
        (student_id, {"student": student, "internship": internship, "context": None})
        for student_id, student in students
    ]
    results = await analyze_batch(requests)
    return _sorted_by_score([{**analysis, "student_id": student_id} for student_id, analysis in results])


async def analyze_internships(
    student: dict[str, Any],
    internships: list[tuple[str, dict[str, Any]]],
) -> list[dict[str, Any]]:
    requests = [
        (internship_id, {"student": student, "internship": internship, "context": None})
        for internship_id, internship in internships
    ]
    results = await analyze_batch(requests)
    return _sorted_by_score(
        [{**analysis, "internship_id": internship_id} for internship_id, analysis in results]
    )
