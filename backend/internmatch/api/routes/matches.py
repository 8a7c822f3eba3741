import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from internmatch.api.deps import get_db
from internmatch.core.ratelimit import match_rate_limiter
from internmatch.schemas.api import (
    CacheInvalidationOut,
    CandidateAnalysisOut,
    MatchAnalysisOut,
    MatchAnalyzeIn,
    ScoredInternshipOut,
    ScoredStudentOut,
)
from internmatch.services import profiles
from internmatch.services.match_request import MatchRequestError
from internmatch.services.recommendations import (
    analyze_candidates_for_internship,
    get_match_analysis,
    invalidate_internship_cache,
    invalidate_student_cache,
    score_candidates_for_internship,
    score_internships_for_student,
)

router = APIRouter()


@router.get(
    "/student/{student_id}/recommended-internships",
    response_model=list[ScoredInternshipOut],
)
async def recommended_internships(
    student_id: str,
    limit: int | None = Query(default=None, ge=1, le=100),
    db: Session = Depends(get_db),
):
    match_rate_limiter.check(f"student:{student_id}")
    return await score_internships_for_student(db, student_id, limit)


@router.get(
    "/internships/{internship_id}/recommended-candidates",
    response_model=list[ScoredStudentOut],
)
async def recommended_candidates(
    internship_id: str,
    limit: int | None = Query(default=None, ge=1, le=100),
    db: Session = Depends(get_db),
):
    match_rate_limiter.check(f"internship:{internship_id}")
    if not await asyncio.to_thread(profiles.get_internship, db, internship_id):
        raise HTTPException(status_code=404, detail="Internship not found")
    return await score_candidates_for_internship(db, internship_id, limit)


@router.post("/matches/analyze", response_model=MatchAnalysisOut)
async def analyze_match(
    payload: MatchAnalyzeIn,
    db: Session = Depends(get_db),
):
    match_rate_limiter.check(f"student:{payload.student_id}:analyze")
    try:
        return await get_match_analysis(
            db,
            payload.student_id,
            payload.internship_id,
            context=payload.context.model_dump() if payload.context else None,
            refresh=payload.refresh,
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except MatchRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post(
    "/internships/{internship_id}/analyze-candidates",
    response_model=list[CandidateAnalysisOut],
)
async def analyze_candidates(
    internship_id: str,
    db: Session = Depends(get_db),
):
    match_rate_limiter.check(f"internship:{internship_id}:batch")
    try:
        return await analyze_candidates_for_internship(db, internship_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except MatchRequestError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/matches/cache/students/{student_id}", response_model=CacheInvalidationOut)
async def clear_student_matches(student_id: str, db: Session = Depends(get_db)):
    await invalidate_student_cache(db, student_id)
    return {"ok": True, "scope": "student", "id": student_id}


@router.delete("/matches/cache/internships/{internship_id}", response_model=CacheInvalidationOut)
async def clear_internship_matches(internship_id: str, db: Session = Depends(get_db)):
    await invalidate_internship_cache(db, internship_id)
    return {"ok": True, "scope": "internship", "id": internship_id}
