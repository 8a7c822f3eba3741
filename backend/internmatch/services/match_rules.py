from datetime import datetime
from typing import Any

from internmatch.services.match_scoring import NEUTRAL_SUBSCORE

BASE_SCORE = 50
RULES_CONFIDENCE = 40
REASON_LIMIT = 4


def _overlap(left: list[str], right: list[str]) -> list[str]:
    targets = [value.lower() for value in right]
    return [
        value
        for value in left
        if any(target in value.lower() or value.lower() in target for target in targets)
    ]


def _parse_gpa(raw: str | None) -> float | None:
    if not raw:
        return None
    try:
        return float(str(raw).split("/")[0].strip())
    except ValueError:
        return None


def _clamp(score: int) -> int:
    return max(0, min(100, score))


def _analysis(
    score: int,
    reasons: list[str],
    *,
    skills_score: int,
    missing_skills: list[str],
) -> dict[str, Any]:
    return {
        "overall_match": _clamp(score),
        "confidence": RULES_CONFIDENCE,
        "key_strengths": reasons[:REASON_LIMIT],
        "potential_concerns": [],
        "skill_gaps": missing_skills,
        "career_impact": "Estimated from profile keywords; detailed analysis not requested.",
        "employer_benefits": [],
        "actionable_advice": [f"Build experience with {skill}" for skill in missing_skills[:3]],
        "breakdown": {
            "skills_match": _clamp(skills_score),
            "experience_match": NEUTRAL_SUBSCORE,
            "location_match": NEUTRAL_SUBSCORE,
            "culture_match": NEUTRAL_SUBSCORE,
            "career_fit_match": NEUTRAL_SUBSCORE,
        },
    }


def _skills_subscore(student_skills: list[str], posting_skills: list[str]) -> tuple[int, list[str]]:
    if not posting_skills:
        return NEUTRAL_SUBSCORE, []
    covered = _overlap(posting_skills, student_skills)
    missing = [skill for skill in posting_skills if skill not in covered]
    return round(100 * len(covered) / len(posting_skills)), missing


def rules_internship_analysis(request: dict[str, Any], *, today: datetime | None = None) -> dict[str, Any]:
    """Keyword heuristic used when ranking postings for one student."""
    student = request["student"]
    internship = request["internship"]
    current_year = (today or datetime.utcnow()).year
    score = BASE_SCORE
    reasons: list[str] = []

    matched_skills = _overlap(student["skills"], internship["skills"])
    if matched_skills:
        score += len(matched_skills) * 10
        reasons.append(f"Skills match: {', '.join(matched_skills[:3])}")

    matched_interests = _overlap(student["interests"], internship["skills"])
    if matched_interests:
        score += len(matched_interests) * 8
        reasons.append("Interests align with role requirements")

    graduation_year = student.get("graduation_year")
    if graduation_year and graduation_year <= current_year:
        score += 15
        reasons.append("Graduation timeline matches internship duration")

    skills_score, missing = _skills_subscore(student["skills"], internship["skills"])
    return _analysis(score, reasons, skills_score=skills_score, missing_skills=missing)


def rules_candidate_analysis(request: dict[str, Any], *, today: datetime | None = None) -> dict[str, Any]:
    """Keyword and GPA heuristic used when ranking candidates for one posting."""
    student = request["student"]
    internship = request["internship"]
    current_year = (today or datetime.utcnow()).year
    score = BASE_SCORE
    reasons: list[str] = []

    matched_skills = _overlap(student["skills"], internship["skills"])
    if matched_skills:
        score += len(matched_skills) * 12
        reasons.append(f"Strong skills match: {', '.join(matched_skills[:3])}")

    gpa = _parse_gpa(student.get("gpa"))
    if gpa is not None and gpa >= 3.5:
        score += 20
        reasons.append("High academic performance")
    elif gpa is not None and gpa >= 3.0:
        score += 10
        reasons.append("Good academic performance")

    graduation_year = student.get("graduation_year")
    if graduation_year and graduation_year >= current_year:
        score += 10
        reasons.append("Available for upcoming internship period")

    skills_score, missing = _skills_subscore(student["skills"], internship["skills"])
    return _analysis(score, reasons, skills_score=skills_score, missing_skills=missing)
