from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session, joinedload

from internmatch.models.entities import (
    Employer,
    Internship,
    InternshipStatus,
    Student,
    User,
)
from internmatch.services.match_cache import (
    delete_matches_for_internship,
    delete_matches_for_student,
)

logger = logging.getLogger(__name__)

STUDENT_UPDATABLE_FIELDS = {
    "university",
    "major",
    "graduation_year",
    "gpa",
    "skills",
    "interests",
    "location",
    "resume_url",
    "resume_text",
    "preferences",
}
INTERNSHIP_UPDATABLE_FIELDS = {
    "title",
    "description",
    "requirements",
    "skills",
    "location",
    "duration",
    "stipend",
    "status",
    "max_applications",
    "deadline",
}
REQUIRED_TEXT_FIELDS = {"university", "major", "title", "description", "duration", "location"}


def get_student_profile(db: Session, student_id: str) -> Student | None:
    return (
        db.query(Student)
        .options(joinedload(Student.user))
        .filter(Student.id == student_id)
        .first()
    )


def get_user_display_name(db: Session, user_id: str) -> str:
    user = db.query(User).filter(User.id == user_id).first()
    return user.name if user and user.name else "Student"


def list_all_students(db: Session) -> list[Student]:
    return (
        db.query(Student)
        .options(joinedload(Student.user))
        .order_by(Student.id)
        .all()
    )


def get_internship(db: Session, internship_id: str) -> Internship | None:
    return (
        db.query(Internship)
        .options(joinedload(Internship.employer).joinedload(Employer.user))
        .filter(Internship.id == internship_id)
        .first()
    )


def list_open_internships(db: Session) -> list[Internship]:
    return (
        db.query(Internship)
        .options(joinedload(Internship.employer))
        .filter(Internship.status == InternshipStatus.open.value)
        .order_by(Internship.created_at.desc(), Internship.id)
        .all()
    )


def _apply_updates(record: Any, updates: dict[str, Any], allowed: set[str]) -> None:
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise ValueError(f"Unsupported fields: {', '.join(unknown)}")
    columns = record.__table__.columns
    for field, value in updates.items():
        if value is None and not columns[field].nullable:
            raise ValueError(f"{field} cannot be null")
        if field in REQUIRED_TEXT_FIELDS and not (value or "").strip():
            raise ValueError(f"{field} cannot be empty")
    for field, value in updates.items():
        setattr(record, field, value)


def update_student_profile(db: Session, student_id: str, updates: dict[str, Any]) -> Student:
    """Apply a profile edit and drop the student's cached matches in one commit."""
    student = get_student_profile(db, student_id)
    if not student:
        raise LookupError("Student profile not found")
    _apply_updates(student, updates, STUDENT_UPDATABLE_FIELDS)
    student.updated_at = datetime.utcnow()
    removed = delete_matches_for_student(db, student.id)
    db.commit()
    db.refresh(student)
    logger.info("Updated student %s and invalidated %s cached matches", student.id, removed)
    return student


def update_internship(db: Session, internship_id: str, updates: dict[str, Any]) -> Internship:
    """Apply a posting edit and drop the posting's cached matches in one commit."""
    internship = get_internship(db, internship_id)
    if not internship:
        raise LookupError("Internship not found")
    status = updates.get("status")
    if status is not None and status not in {item.value for item in InternshipStatus}:
        raise ValueError(f"Invalid internship status: {status}")
    _apply_updates(internship, updates, INTERNSHIP_UPDATABLE_FIELDS)
    internship.updated_at = datetime.utcnow()
    removed = delete_matches_for_internship(db, internship.id)
    db.commit()
    db.refresh(internship)
    logger.info("Updated internship %s and invalidated %s cached matches", internship.id, removed)
    return internship
