from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from internmatch.api.deps import get_db
from internmatch.schemas.api import (
    InternshipOut,
    InternshipUpdateIn,
    StudentOut,
    StudentProfileUpdateIn,
)
from internmatch.services.profiles import update_internship, update_student_profile
from internmatch.services.recommendations import serialize_internship, serialize_student

router = APIRouter()


@router.put("/student/{student_id}/profile", response_model=StudentOut)
def update_profile(
    student_id: str,
    payload: StudentProfileUpdateIn,
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    try:
        student = update_student_profile(db, student_id, updates)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_student(student)


@router.put("/internships/{internship_id}", response_model=InternshipOut)
def update_posting(
    internship_id: str,
    payload: InternshipUpdateIn,
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    try:
        internship = update_internship(db, internship_id, updates)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return serialize_internship(internship)
