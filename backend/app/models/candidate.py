"""
Candidate models
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.enums import Gender


class Candidate(Base):
    """Structured candidate extracted from one resume"""

    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, index=True)

    # Resume reference (re-parsing updates this row in place)
    resume_id = Column(Integer, ForeignKey("resumes.id"), unique=True, nullable=False)

    # Personal information
    name = Column(String(100), index=True)
    phone = Column(String(50))
    email = Column(String(255), index=True)
    gender = Column(String(10), default=Gender.UNKNOWN.value)
    age = Column(Integer)

    # Education
    education = Column(String(50))  # highest degree as extracted
    school = Column(String(200))
    major = Column(String(200))
    graduation_year = Column(Integer)

    # Employment
    work_years = Column(Integer)
    current_company = Column(String(200))
    current_position = Column(String(200))

    # Free-text tags, no fixed vocabulary
    skills = Column(JSON)

    # Ordered lists of open field maps
    # work: company, position, startDate, endDate, description
    # project: name, role, startDate, endDate, description, technologies
    work_experience = Column(JSON)
    project_experience = Column(JSON)
    self_evaluation = Column(Text)

    # Verbatim AI response, kept for audit and replay
    raw_json = Column(Text)

    # Vector index reference and the summary it was built from (set together)
    vector_id = Column(String(64))
    ai_summary = Column(Text)

    # Metadata
    parsed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    resume = relationship("Resume", back_populates="candidate")
    applications = relationship("JobApplication", back_populates="candidate", cascade="all, delete-orphan")
