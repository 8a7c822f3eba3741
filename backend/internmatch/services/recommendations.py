"""Ranks open postings for a student, or students for a posting.

Every pair is scored from the match cache when possible. Misses are built
into comparison payloads, scored in one bounded concurrent batch, and written
back to the cache one by one before the ranked list is returned. Blocking
database work runs in worker threads so the event loop keeps serving other
requests while a ranking is in flight.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from internmatch.core.config import settings
from internmatch.models.entities import Internship, Student
from internmatch.services import match_scoring, profiles
from internmatch.services.match_cache import MatchCache
from internmatch.services.match_request import (
    MatchRequestError,
    build_internship_payload,
    build_match_request,
    build_student_payload,
)
from internmatch.services.match_rules import (
    rules_candidate_analysis,
    rules_internship_analysis,
)

logger = logging.getLogger(__name__)

MATCH_REASON_LIMIT = 4

RulesScorer = Callable[[dict[str, Any]], dict[str, Any]]


def serialize_internship(internship: Internship) -> dict[str, Any]:
    employer = internship.employer
    return {
        "id": internship.id,
        "employer_id": internship.employer_id,
        "title": internship.title,
        "description": internship.description,
        "requirements": list(internship.requirements or []),
        "skills": list(internship.skills or []),
        "location": internship.location,
        "duration": internship.duration,
        "stipend": internship.stipend,
        "status": internship.status,
        "max_applications": internship.max_applications,
        "current_applications": internship.current_applications or 0,
        "deadline": internship.deadline,
        "created_at": internship.created_at,
        "employer": {
            "id": employer.id,
            "company_name": employer.company_name,
            "industry": employer.industry,
            "location": employer.location,
            "description": employer.description,
            "website": employer.website,
        }
        if employer
        else None,
    }


def serialize_student(student: Student) -> dict[str, Any]:
    user = student.user
    return {
        "id": student.id,
        "user_id": student.user_id,
        "name": user.name if user else None,
        "email": user.email if user else None,
        "university": student.university,
        "major": student.major,
        "graduation_year": student.graduation_year,
        "gpa": student.gpa,
        "skills": list(student.skills or []),
        "interests": list(student.interests or []),
        "location": student.location,
    }


def rank_by_score(rows: list[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    """Highest score first; rows with equal scores keep their retrieval order."""
    ranked = sorted(rows, key=lambda row: row["match_score"], reverse=True)
    return ranked[: max(limit, 0)]


async def _score_pairs(
    cache: MatchCache,
    pairs: list[tuple[Student, Internship]],
    rules: RulesScorer,
) -> list[dict[str, Any] | None]:
    analyses: list[dict[str, Any] | None] = [None] * len(pairs)
    pending: list[tuple[int, dict[str, Any]]] = []
    # Cache writes commit and expire ORM rows, so capture keys up front.
    keys = [(student.id, internship.id) for student, internship in pairs]

    for index, (student, internship) in enumerate(pairs):
        cached = await asyncio.to_thread(cache.get, *keys[index])
        if cached is not None:
            analyses[index] = cached
            continue
        try:
            request = build_match_request(student, internship)
        except MatchRequestError as exc:
            logger.warning("Skipping unscorable pair: %s", exc)
            continue
        pending.append((index, request))

    if not pending:
        return analyses

    if settings.match_scoring_mode == "rules":
        scored = [(index, rules(request)) for index, request in pending]
    else:
        keyed = [(":".join(keys[index]), request) for index, request in pending]
        results = await match_scoring.analyze_batch(keyed)
        scored = [(index, analysis) for (index, _), (_, analysis) in zip(pending, results)]

    for index, analysis in scored:
        analyses[index] = analysis
        await asyncio.to_thread(cache.put, *keys[index], analysis)
    return analyses


def _with_match(entity: dict[str, Any], analysis: dict[str, Any]) -> dict[str, Any]:
    return {
        **entity,
        "match_score": analysis["overall_match"],
        "match_reasons": list(analysis["key_strengths"][:MATCH_REASON_LIMIT]),
        "analysis": analysis,
    }


async def score_internships_for_student(
    db: Session,
    student_id: str,
    limit: int | None = None,
    *,
    cache: MatchCache | None = None,
) -> list[dict[str, Any]]:
    limit = settings.recommended_internships_limit if limit is None else limit
    student = await asyncio.to_thread(profiles.get_student_profile, db, student_id)
    if student is None:
        return []
    internships = await asyncio.to_thread(profiles.list_open_internships, db)
    if not internships:
        return []

    # Serialize before any cache write commits and expires the loaded rows.
    entities = [serialize_internship(internship) for internship in internships]
    analyses = await _score_pairs(
        cache if cache is not None else MatchCache(db),
        [(student, internship) for internship in internships],
        rules_internship_analysis,
    )
    rows = [
        _with_match(entity, analysis)
        for entity, analysis in zip(entities, analyses)
        if analysis is not None
    ]
    return rank_by_score(rows, limit)


async def score_candidates_for_internship(
    db: Session,
    internship_id: str,
    limit: int | None = None,
    *,
    cache: MatchCache | None = None,
) -> list[dict[str, Any]]:
    limit = settings.recommended_candidates_limit if limit is None else limit
    internship = await asyncio.to_thread(profiles.get_internship, db, internship_id)
    if internship is None:
        return []
    students = await asyncio.to_thread(profiles.list_all_students, db)
    if not students:
        return []

    entities = [serialize_student(student) for student in students]
    analyses = await _score_pairs(
        cache if cache is not None else MatchCache(db),
        [(student, internship) for student in students],
        rules_candidate_analysis,
    )
    rows = [
        _with_match(entity, analysis)
        for entity, analysis in zip(entities, analyses)
        if analysis is not None
    ]
    return rank_by_score(rows, limit)


async def get_match_analysis(
    db: Session,
    student_id: str,
    internship_id: str,
    *,
    context: dict[str, Any] | None = None,
    refresh: bool = False,
    cache: MatchCache | None = None,
) -> dict[str, Any]:
    """Score one pair, serving the cache unless a refresh or context hints are given.

    Raises LookupError when either record is missing and MatchRequestError
    when a record cannot be scored.
    """
    cache = cache if cache is not None else MatchCache(db)
    student = await asyncio.to_thread(profiles.get_student_profile, db, student_id)
    if student is None:
        raise LookupError("Student profile not found")
    internship = await asyncio.to_thread(profiles.get_internship, db, internship_id)
    if internship is None:
        raise LookupError("Internship not found")

    if not refresh and not context:
        cached = await asyncio.to_thread(cache.get, student.id, internship.id)
        if cached is not None:
            return cached

    request = build_match_request(student, internship, context=context)
    if settings.match_scoring_mode == "rules":
        analysis = rules_internship_analysis(request)
    else:
        analysis = await match_scoring.analyze_match(request)
    await asyncio.to_thread(cache.put, student_id, internship_id, analysis)
    return analysis


async def analyze_candidates_for_internship(
    db: Session,
    internship_id: str,
    *,
    cache: MatchCache | None = None,
) -> list[dict[str, Any]]:
    """Batch analysis of every student against one posting, best first."""
    cache = cache if cache is not None else MatchCache(db)
    internship = await asyncio.to_thread(profiles.get_internship, db, internship_id)
    if internship is None:
        raise LookupError("Internship not found")
    students = await asyncio.to_thread(profiles.list_all_students, db)

    internship_payload = build_internship_payload(internship)
    candidates: list[tuple[str, dict[str, Any]]] = []
    for student in students:
        try:
            candidates.append((student.id, build_student_payload(student)))
        except MatchRequestError as exc:
            logger.warning("Skipping unscorable candidate: %s", exc)
    if not candidates:
        return []

    if settings.match_scoring_mode == "rules":
        rows = [
            {
                **rules_candidate_analysis(
                    {"student": student, "internship": internship_payload, "context": None}
                ),
                "student_id": student_id,
            }
            for student_id, student in candidates
        ]
        results = sorted(rows, key=lambda row: row["overall_match"], reverse=True)
    else:
        results = await match_scoring.analyze_candidates(internship_payload, candidates)
    for row in results:
        analysis = {key: value for key, value in row.items() if key != "student_id"}
        await asyncio.to_thread(cache.put, row["student_id"], internship_id, analysis)
    return results


async def invalidate_student_cache(db: Session, student_id: str) -> None:
    await asyncio.to_thread(MatchCache(db).invalidate_for_student, student_id)


async def invalidate_internship_cache(db: Session, internship_id: str) -> None:
    await asyncio.to_thread(MatchCache(db).invalidate_for_internship, internship_id)
