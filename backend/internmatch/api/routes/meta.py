from fastapi import APIRouter
from sqlalchemy import text

from internmatch.core.config import settings
from internmatch.core.database import engine
from internmatch.services.match_scoring import (
    ai_is_configured,
    get_active_ai_model,
    get_active_ai_provider,
)

router = APIRouter(prefix="/meta")


def _ai_status() -> dict:
    return {
        "enabled": ai_is_configured(),
        "scoring_mode": settings.match_scoring_mode,
        "provider": get_active_ai_provider(),
        "model": get_active_ai_model(),
        "concurrency": settings.match_concurrency,
        "timeout_seconds": settings.match_timeout_seconds,
    }


@router.get("/ai")
def ai_meta():
    return _ai_status()


@router.get("/health")
def health_meta():
    db_ok = False
    db_error = None
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        db_ok = True
    except Exception as exc:
        db_error = str(exc)
    return {
        "ok": db_ok,
        "database": {"ok": db_ok, "error": db_error},
        "ai": _ai_status(),
    }
