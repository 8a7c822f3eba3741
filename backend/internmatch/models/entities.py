from enum import Enum
from uuid import uuid4
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from internmatch.core.database import Base

StringList = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid4())


class UserRole(str, Enum):
    student = "student"
    employer = "employer"
    admin = "admin"


class InternshipStatus(str, Enum):
    open = "open"
    closed = "closed"
    filled = "filled"


class ApplicationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(160), nullable=False)
    role = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Student(Base):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    university = Column(String(200), nullable=False)
    major = Column(String(160), nullable=False)
    graduation_year = Column(Integer, nullable=False)
    gpa = Column(String(16), nullable=True)
    skills = Column(StringList, nullable=False, default=list)
    interests = Column(StringList, nullable=False, default=list)
    location = Column(String(160), nullable=False, default="India")
    resume_url = Column(Text, nullable=True)
    resume_text = Column(Text, nullable=True)
    preferences = Column(StringList, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")


class Employer(Base):
    __tablename__ = "employers"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    company_name = Column(String(200), nullable=False)
    industry = Column(String(160), nullable=False)
    company_size = Column(String(40), nullable=True)
    location = Column(String(160), nullable=False)
    description = Column(Text, nullable=True)
    website = Column(String(255), nullable=True)

    user = relationship("User")


class Internship(Base):
    __tablename__ = "internships"

    id = Column(String(36), primary_key=True, default=_uuid)
    employer_id = Column(String(36), ForeignKey("employers.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(StringList, nullable=False, default=list)
    skills = Column(StringList, nullable=False, default=list)
    location = Column(String(160), nullable=False, default="India")
    duration = Column(String(80), nullable=False)
    stipend = Column(String(80), nullable=True)
    status = Column(String(16), nullable=False, default=InternshipStatus.open.value, index=True)
    max_applications = Column(Integer, nullable=True, default=100)
    current_applications = Column(Integer, nullable=False, default=0)
    deadline = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    employer = relationship("Employer")


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    internship_id = Column(String(36), ForeignKey("internships.id"), nullable=False, index=True)
    status = Column(String(16), nullable=False, default=ApplicationStatus.pending.value)
    ai_match_score = Column(Integer, nullable=True)
    match_reasons = Column(StringList, nullable=True)
    applied_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)

    student = relationship("Student")
    internship = relationship("Internship")


class AiMatch(Base):
    __tablename__ = "ai_matches"

    id = Column(String(36), primary_key=True, default=_uuid)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False, index=True)
    internship_id = Column(String(36), ForeignKey("internships.id"), nullable=False, index=True)
    overall_match = Column(Integer, nullable=False)
    confidence = Column(Integer, nullable=False)
    key_strengths = Column(StringList, nullable=False, default=list)
    potential_concerns = Column(StringList, nullable=False, default=list)
    skill_gaps = Column(StringList, nullable=False, default=list)
    career_impact = Column(Text, nullable=False, default="")
    employer_benefits = Column(StringList, nullable=False, default=list)
    actionable_advice = Column(StringList, nullable=False, default=list)
    skills_match = Column(Integer, nullable=False)
    experience_match = Column(Integer, nullable=False)
    location_match = Column(Integer, nullable=False)
    culture_match = Column(Integer, nullable=False)
    career_fit_match = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
