from datetime import datetime, timedelta
from pathlib import Path
import os
import sys

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).resolve().parents[1]))
os.environ.setdefault("DATABASE_URL", "sqlite://")

from internmatch.core.config import settings
from internmatch.core.database import Base
from internmatch.core.ratelimit import match_rate_limiter
from internmatch.models.entities import Employer, Internship, Student, User
from internmatch.services import match_scoring


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    monkeypatch.setattr(settings, "match_scoring_mode", "ai")
    monkeypatch.setattr(settings, "llm_provider", "openrouter")
    monkeypatch.setattr(settings, "openrouter_api_key", "test-key")
    monkeypatch.setattr(settings, "match_concurrency", 4)
    monkeypatch.setattr(match_scoring, "LLM_RETRY_DELAY_SECONDS", 0)
    match_rate_limiter.reset()
    yield
    match_rate_limiter.reset()


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


class Seeder:
    def __init__(self, db):
        self.db = db
        self.counter = 0
        self.clock = datetime(2026, 1, 1)

    def _user(self, name: str, role: str) -> User:
        self.counter += 1
        user = User(name=name, email=f"user{self.counter}@example.com", role=role)
        self.db.add(user)
        self.db.flush()
        return user

    def employer(self, **overrides) -> Employer:
        user = self._user(overrides.pop("contact_name", "Hiring Team"), "employer")
        values = {
            "company_name": "Acme Analytics",
            "industry": "Software",
            "location": "Bengaluru",
            "description": "Data tooling for retailers.",
        }
        values.update(overrides)
        employer = Employer(user_id=user.id, **values)
        self.db.add(employer)
        self.db.commit()
        return employer

    def student(self, name: str = "Asha Rao", **overrides) -> Student:
        user = self._user(name, "student")
        values = {
            "university": "IIT Delhi",
            "major": "Computer Science",
            "graduation_year": 2026,
            "gpa": "3.6",
            "skills": ["Python", "SQL"],
            "interests": ["Data"],
            "location": "Delhi",
        }
        values.update(overrides)
        student = Student(user_id=user.id, **values)
        self.db.add(student)
        self.db.commit()
        return student

    def internship(self, employer: Employer | None = None, **overrides) -> Internship:
        employer = employer or self.employer()
        # Each new posting is newer than the last one.
        self.clock += timedelta(minutes=1)
        values = {
            "title": "Data Intern",
            "description": "Build dashboards and data pipelines.",
            "requirements": ["Comfortable with SQL"],
            "skills": ["SQL", "Figma"],
            "location": "Bengaluru",
            "duration": "3 months",
            "stipend": "20000 INR",
            "status": "open",
            "created_at": self.clock,
        }
        values.update(overrides)
        internship = Internship(employer_id=employer.id, **values)
        self.db.add(internship)
        self.db.commit()
        return internship


@pytest.fixture()
def seed(db_session):
    return Seeder(db_session)


def make_analysis(score: int, strengths: list[str] | None = None) -> dict:
    analysis = match_scoring.fallback_analysis()
    analysis["overall_match"] = score
    analysis["confidence"] = 80
    analysis["key_strengths"] = strengths if strengths is not None else [f"strength {score}"]
    analysis["potential_concerns"] = []
    return analysis


@pytest.fixture()
def analysis_factory():
    return make_analysis
