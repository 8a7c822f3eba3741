from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from internmatch.models.entities import AiMatch
from internmatch.services.match_scoring import BREAKDOWN_FIELDS, LIST_FIELDS

logger = logging.getLogger(__name__)

_LIST_COLUMNS = tuple(LIST_FIELDS.values())
_BREAKDOWN_COLUMNS = tuple(BREAKDOWN_FIELDS.values())


def _row_to_analysis(row: AiMatch) -> dict[str, Any]:
    analysis: dict[str, Any] = {
        "overall_match": row.overall_match,
        "confidence": row.confidence,
        "career_impact": row.career_impact or "",
    }
    for column in _LIST_COLUMNS:
        analysis[column] = list(getattr(row, column) or [])
    analysis["breakdown"] = {column: getattr(row, column) for column in _BREAKDOWN_COLUMNS}
    return analysis


def _analysis_to_row(student_id: str, internship_id: str, analysis: dict[str, Any]) -> AiMatch:
    breakdown = analysis.get("breakdown") or {}
    row = AiMatch(
        student_id=student_id,
        internship_id=internship_id,
        overall_match=int(analysis["overall_match"]),
        confidence=int(analysis["confidence"]),
        career_impact=analysis.get("career_impact") or "",
        created_at=datetime.utcnow(),
    )
    for column in _LIST_COLUMNS:
        setattr(row, column, list(analysis.get(column) or []))
    for column in _BREAKDOWN_COLUMNS:
        setattr(row, column, int(breakdown.get(column, 0)))
    return row


def delete_matches_for_student(db: Session, student_id: str) -> int:
    """Stage deletion of a student's cached matches; the caller commits."""
    return (
        db.query(AiMatch)
        .filter(AiMatch.student_id == student_id)
        .delete(synchronize_session=False)
    )


def delete_matches_for_internship(db: Session, internship_id: str) -> int:
    return (
        db.query(AiMatch)
        .filter(AiMatch.internship_id == internship_id)
        .delete(synchronize_session=False)
    )


class MatchCache:
    """Most recent MatchAnalysis per (student, internship) pair, kept in ``ai_matches``.

    Writes are best-effort: a failed ``put`` is logged and rolled back so the
    freshly computed score can still be served. Concurrent writers for the
    same pair race and the last commit wins.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, student_id: str, internship_id: str) -> dict[str, Any] | None:
        row = (
            self.db.query(AiMatch)
            .filter(AiMatch.student_id == student_id)
            .filter(AiMatch.internship_id == internship_id)
            .order_by(AiMatch.created_at.desc())
            .first()
        )
        return _row_to_analysis(row) if row else None

    def put(self, student_id: str, internship_id: str, analysis: dict[str, Any]) -> None:
        try:
            (
                self.db.query(AiMatch)
                .filter(AiMatch.student_id == student_id)
                .filter(AiMatch.internship_id == internship_id)
                .delete(synchronize_session=False)
            )
            self.db.add(_analysis_to_row(student_id, internship_id, analysis))
            self.db.commit()
        except Exception:
            logger.exception(
                "Failed to cache match analysis for student %s / internship %s",
                student_id,
                internship_id,
            )
            try:
                self.db.rollback()
            except Exception:
                logger.exception("Rollback after failed match cache write also failed")

    def invalidate_for_student(self, student_id: str) -> None:
        removed = delete_matches_for_student(self.db, student_id)
        self.db.commit()
        logger.info("Invalidated %s cached matches for student %s", removed, student_id)

    def invalidate_for_internship(self, internship_id: str) -> None:
        removed = delete_matches_for_internship(self.db, internship_id)
        self.db.commit()
        logger.info("Invalidated %s cached matches for internship %s", removed, internship_id)
