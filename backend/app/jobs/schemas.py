"""
Job Pydantic schemas
"""
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from datetime import datetime

from app.core.exceptions import ValidationError
from app.models.enums import EducationLevel, JobStatus


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class JobCreate(CamelModel):
    """Job creation schema"""
    title: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    requirements: Optional[str] = None
    required_skills: List[str] = []
    education: Optional[str] = None
    experience_min: Optional[int] = Field(None, ge=0, le=80)
    experience_max: Optional[int] = Field(None, ge=0, le=80)
    status: str = JobStatus.DRAFT.value

    @field_validator("education")
    @classmethod
    def _education_level(cls, value):
        level = EducationLevel.from_text(value)
        return level.value if level else None

    @field_validator("status")
    @classmethod
    def _status(cls, value):
        try:
            return JobStatus.parse(value).value
        except ValidationError as e:
            raise ValueError(e.message)

    @model_validator(mode="after")
    def _experience_range(self):
        if (
            self.experience_min is not None
            and self.experience_max is not None
            and self.experience_min > self.experience_max
        ):
            raise ValueError("experienceMin must not exceed experienceMax")
        return self


class JobResponse(CamelModel):
    """Job response schema"""
    id: int
    title: str
    department: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    required_skills: List[str] = []
    education: Optional[str] = None
    experience_min: Optional[int] = None
    experience_max: Optional[int] = None
    status: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    @field_validator("required_skills", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []
