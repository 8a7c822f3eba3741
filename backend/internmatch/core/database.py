from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from internmatch.core.config import settings


def _connect_args(url: str) -> dict:
    # Sessions hop between worker threads via asyncio.to_thread.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db() -> None:
    from internmatch.models import entities  # noqa: F401

    Base.metadata.create_all(bind=engine)
