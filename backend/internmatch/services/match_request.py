from typing import Any

REQUIRED_STUDENT_FIELDS = ("university", "major")
REQUIRED_INTERNSHIP_FIELDS = ("title", "description")


class MatchRequestError(ValueError):
    """A student or internship record is missing a field scoring depends on."""


def _text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = " ".join(str(value).split())
    return cleaned or None


def _string_list(values: Any) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        cleaned = _text(value)
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return result


def _require(record: Any, fields: tuple[str, ...], label: str) -> None:
    missing = [field for field in fields if not _text(getattr(record, field, None))]
    if missing:
        record_id = getattr(record, "id", None)
        raise MatchRequestError(
            f"{label} {record_id or '<unknown>'} is missing required fields: {', '.join(missing)}"
        )


def build_student_payload(student: Any) -> dict[str, Any]:
    _require(student, REQUIRED_STUDENT_FIELDS, "Student")
    user = getattr(student, "user", None)
    graduation_year = getattr(student, "graduation_year", None)
    return {
        "name": _text(getattr(user, "name", None)) or "Student",
        "university": _text(student.university),
        "major": _text(student.major),
        "graduation_year": int(graduation_year) if graduation_year else None,
        "gpa": _text(getattr(student, "gpa", None)),
        "skills": _string_list(getattr(student, "skills", None)),
        "interests": _string_list(getattr(student, "interests", None)),
        "location": _text(getattr(student, "location", None)) or "Not specified",
        "resume_text": _text(getattr(student, "resume_text", None)),
    }


def build_internship_payload(internship: Any) -> dict[str, Any]:
    _require(internship, REQUIRED_INTERNSHIP_FIELDS, "Internship")
    employer = getattr(internship, "employer", None)
    return {
        "title": _text(internship.title),
        "description": _text(internship.description),
        "requirements": _string_list(getattr(internship, "requirements", None)),
        "skills": _string_list(getattr(internship, "skills", None)),
        "location": _text(getattr(internship, "location", None)) or "Not specified",
        "duration": _text(getattr(internship, "duration", None)) or "Not specified",
        "stipend": _text(getattr(internship, "stipend", None)),
        "company": {
            "name": _text(getattr(employer, "company_name", None)) or "Unknown company",
            "industry": _text(getattr(employer, "industry", None)) or "Not specified",
            "description": _text(getattr(employer, "description", None)),
        },
    }


def normalize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    if not context:
        return None
    normalized = {
        "market_trends": _string_list(context.get("market_trends")),
        "similar_successful_matches": _string_list(context.get("similar_successful_matches")),
        "career_goals": _text(context.get("career_goals")),
    }
    if not any(normalized.values()):
        return None
    return normalized


def build_match_request(
    student: Any,
    internship: Any,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble the comparison payload for one student/internship pair.

    Raises MatchRequestError when either record lacks a required field; the
    caller must not score the pair in that case.
    """
    return {
        "student": build_student_payload(student),
        "internship": build_internship_payload(internship),
        "context": normalize_context(context),
    }
