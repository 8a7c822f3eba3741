from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from internmatch.api.deps import get_db
from internmatch.models.entities import Application
from internmatch.schemas.api import ApplicationCreateIn, ApplicationOut, ApplicationStatusIn
from internmatch.services.applications import create_application, update_application_status

router = APIRouter(prefix="/applications")


def _serialize_application(application: Application) -> dict:
    return {
        "id": application.id,
        "student_id": application.student_id,
        "internship_id": application.internship_id,
        "status": application.status,
        "ai_match_score": application.ai_match_score,
        "match_reasons": list(application.match_reasons or []),
        "applied_at": application.applied_at,
        "reviewed_at": application.reviewed_at,
    }


@router.post("", response_model=ApplicationOut)
def apply(payload: ApplicationCreateIn, db: Session = Depends(get_db)):
    try:
        application = create_application(db, payload.student_id, payload.internship_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _serialize_application(application)


@router.patch("/{application_id}", response_model=ApplicationOut)
def decide(
    application_id: str,
    payload: ApplicationStatusIn,
    db: Session = Depends(get_db),
):
    try:
        application = update_application_status(db, application_id, payload.status)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _serialize_application(application)
