"""
Application and match score Pydantic schemas
"""
from typing import Optional, List
from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ApplicationCreate(CamelModel):
    job_id: int
    candidate_id: int


class ScoreBreakdown(CamelModel):
    semantic_score: float
    skill_score: float
    experience_score: float
    education_score: float


class ApplicationResponse(CamelModel):
    """Application with its latest match score, if any"""
    id: int
    job_id: int
    candidate_id: int
    status: str
    match_score: Optional[float] = None
    match_breakdown: Optional[ScoreBreakdown] = None
    match_reasons: List[str] = []
    match_calculated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("match_reasons", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []


class MatchScoreResponse(CamelModel):
    """Result of an explicit recomputation"""
    application_id: int
    job_id: int
    candidate_id: int
    total_score: float  # 0-100, 2 decimals
    breakdown: ScoreBreakdown
    reasons: List[str]
    calculated_at: datetime
