from datetime import datetime

from sqlalchemy.orm import Session

from internmatch.models.entities import (
    Application,
    ApplicationStatus,
    Internship,
    InternshipStatus,
    Student,
)
from internmatch.services.match_cache import MatchCache

MATCH_REASON_LIMIT = 4
TERMINAL_STATUSES = {
    ApplicationStatus.accepted.value,
    ApplicationStatus.rejected.value,
    ApplicationStatus.withdrawn.value,
}


def create_application(db: Session, student_id: str, internship_id: str) -> Application:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise LookupError("Student profile not found")
    internship = db.query(Internship).filter(Internship.id == internship_id).first()
    if not internship:
        raise LookupError("Internship not found")
    if internship.status != InternshipStatus.open.value:
        raise ValueError("Internship is not accepting applications")

    existing = (
        db.query(Application)
        .filter(Application.student_id == student_id)
        .filter(Application.internship_id == internship_id)
        .first()
    )
    if existing:
        raise ValueError("Already applied to this internship")

    # Snapshot whatever score the student saw when applying.
    snapshot = MatchCache(db).get(student_id, internship_id)
    application = Application(
        student_id=student_id,
        internship_id=internship_id,
        status=ApplicationStatus.pending.value,
        ai_match_score=snapshot["overall_match"] if snapshot else None,
        match_reasons=snapshot["key_strengths"][:MATCH_REASON_LIMIT] if snapshot else None,
        applied_at=datetime.utcnow(),
    )
    db.add(application)

    internship.current_applications = (internship.current_applications or 0) + 1
    if internship.max_applications and internship.current_applications >= internship.max_applications:
        internship.status = InternshipStatus.filled.value
    db.commit()
    db.refresh(application)
    return application


def update_application_status(db: Session, application_id: str, status: str) -> Application:
    if status not in TERMINAL_STATUSES:
        raise ValueError(f"Invalid application status: {status}")
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise LookupError("Application not found")
    if application.status in TERMINAL_STATUSES:
        raise ValueError(f"Application is already {application.status}")
    application.status = status
    application.reviewed_at = datetime.utcnow()
    db.commit()
    db.refresh(application)
    return application
