from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Literal, Optional


class MatchBreakdownOut(BaseModel):
    skills_match: int = Field(ge=0, le=100)
    experience_match: int = Field(ge=0, le=100)
    location_match: int = Field(ge=0, le=100)
    culture_match: int = Field(ge=0, le=100)
    career_fit_match: int = Field(ge=0, le=100)


class MatchAnalysisOut(BaseModel):
    overall_match: int = Field(ge=0, le=100)
    confidence: int = Field(ge=0, le=100)
    key_strengths: List[str] = Field(default_factory=list)
    potential_concerns: List[str] = Field(default_factory=list)
    skill_gaps: List[str] = Field(default_factory=list)
    career_impact: str = ""
    employer_benefits: List[str] = Field(default_factory=list)
    actionable_advice: List[str] = Field(default_factory=list)
    breakdown: MatchBreakdownOut


class CandidateAnalysisOut(MatchAnalysisOut):
    student_id: str


class MatchContextIn(BaseModel):
    market_trends: List[str] = Field(default_factory=list)
    similar_successful_matches: List[str] = Field(default_factory=list)
    career_goals: Optional[str] = None


class MatchAnalyzeIn(BaseModel):
    student_id: str
    internship_id: str
    context: Optional[MatchContextIn] = None
    refresh: bool = False


class EmployerSummaryOut(BaseModel):
    id: str
    company_name: str
    industry: str
    location: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None


class InternshipOut(BaseModel):
    id: str
    employer_id: str
    title: str
    description: str
    requirements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    location: str
    duration: str
    stipend: Optional[str] = None
    status: str
    max_applications: Optional[int] = None
    current_applications: int = 0
    deadline: Optional[datetime] = None
    created_at: Optional[datetime] = None
    employer: Optional[EmployerSummaryOut] = None


class StudentOut(BaseModel):
    id: str
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    university: str
    major: str
    graduation_year: int
    gpa: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    location: str


class ScoredInternshipOut(InternshipOut):
    match_score: int
    match_reasons: List[str] = Field(default_factory=list)
    analysis: MatchAnalysisOut


class ScoredStudentOut(StudentOut):
    match_score: int
    match_reasons: List[str] = Field(default_factory=list)
    analysis: MatchAnalysisOut


class StudentProfileUpdateIn(BaseModel):
    university: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = Field(default=None, ge=1950, le=2100)
    gpa: Optional[str] = None
    skills: Optional[List[str]] = None
    interests: Optional[List[str]] = None
    location: Optional[str] = None
    resume_text: Optional[str] = None


class InternshipUpdateIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    location: Optional[str] = None
    duration: Optional[str] = None
    stipend: Optional[str] = None
    status: Optional[Literal["open", "closed", "filled"]] = None
    max_applications: Optional[int] = Field(default=None, ge=1)
    deadline: Optional[datetime] = None


class ApplicationCreateIn(BaseModel):
    student_id: str
    internship_id: str


class ApplicationStatusIn(BaseModel):
    status: Literal["accepted", "rejected", "withdrawn"]


class ApplicationOut(BaseModel):
    id: str
    student_id: str
    internship_id: str
    status: str
    ai_match_score: Optional[int] = None
    match_reasons: List[str] = Field(default_factory=list)
    applied_at: datetime
    reviewed_at: Optional[datetime] = None


class CacheInvalidationOut(BaseModel):
    ok: bool = True
    scope: Literal["student", "internship"]
    id: str
