"""
Candidate Pydantic schemas
"""
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime

from app.core.config import settings


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """138****5678; values shorter than 7 characters are returned as is"""
    if phone is None or len(phone) < 7:
        return phone
    return f"{phone[:3]}****{phone[-4:]}"


def mask_email(email: Optional[str]) -> Optional[str]:
    """zh****@example.com; keeps at most two characters before the @"""
    if email is None:
        return None
    at = email.find("@")
    if at <= 0:
        return email
    return f"{email[:min(at, 2)]}****{email[at:]}"


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serialises camelCase"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class CandidateUpdate(CamelModel):
    """Manual correction of extracted fields; None means unchanged"""
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=120)
    education: Optional[str] = Field(None, max_length=50)
    school: Optional[str] = Field(None, max_length=200)
    major: Optional[str] = Field(None, max_length=200)
    graduation_year: Optional[int] = Field(None, ge=1900, le=2100)
    work_years: Optional[int] = Field(None, ge=0, le=80)
    current_company: Optional[str] = Field(None, max_length=200)
    current_position: Optional[str] = Field(None, max_length=200)
    skills: Optional[List[str]] = None
    work_experience: Optional[List[Dict[str, Any]]] = None
    project_experience: Optional[List[Dict[str, Any]]] = None
    self_evaluation: Optional[str] = None


class CandidateResponse(CamelModel):
    """Candidate response schema"""
    id: int
    resume_id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    education: Optional[str] = None
    school: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    work_years: Optional[int] = None
    current_company: Optional[str] = None
    current_position: Optional[str] = None
    skills: List[str] = []
    work_experience: List[Dict[str, Any]] = []
    project_experience: List[Dict[str, Any]] = []
    self_evaluation: Optional[str] = None
    vector_id: Optional[str] = None
    ai_summary: Optional[str] = None
    parsed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("skills", "work_experience", "project_experience", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []

    def masked(self) -> "CandidateResponse":
        """Display copy with phone and email partly hidden; stored values are untouched"""
        return self.model_copy(update={"phone": mask_phone(self.phone), "email": mask_email(self.email)})


class CandidateListResponse(CamelModel):
    total: int
    page: int
    page_size: int
    items: List[CandidateResponse]


class SmartSearchRequest(CamelModel):
    """Free-text semantic search over candidate embeddings"""
    query: str = Field(..., min_length=1, max_length=1000)
    top_k: int = Field(settings.SEARCH_DEFAULT_TOP_K, ge=1, le=50)
    min_score: float = Field(settings.SEARCH_DEFAULT_MIN_SCORE, ge=0.0, le=1.0)


class SmartSearchCandidate(CamelModel):
    candidate_id: int
    name: Optional[str] = None
    match_score: float  # cosine similarity 0-1, 4 decimals
    current_position: Optional[str] = None
    current_company: Optional[str] = None
    education: Optional[str] = None
    work_years: Optional[int] = None
    skills: List[str] = []
    summary: Optional[str] = None


class SmartSearchResponse(CamelModel):
    query: str
    total_matches: int
    candidates: List[SmartSearchCandidate]
