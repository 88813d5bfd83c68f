"""
Job models
"""
from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.enums import JobStatus


class Job(Base):
    """Job opening, the requirement side of a match"""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    department = Column(String(255))
    description = Column(Text)
    requirements = Column(Text)

    # Scoring inputs
    required_skills = Column(JSON)  # List of skill tags
    education = Column(String(20))  # EducationLevel value, NULL/NONE = no requirement
    experience_min = Column(Integer)
    experience_max = Column(Integer)

    status = Column(String(20), default=JobStatus.DRAFT.value)

    # Metadata
    created_by = Column(BigInteger)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    applications = relationship("JobApplication", back_populates="job", cascade="all, delete-orphan")
