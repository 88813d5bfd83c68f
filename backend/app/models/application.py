"""
Job application and match score models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.enums import ApplicationStatus


class JobApplication(Base):
    """A candidate applying to a job, carrying the latest match score"""

    __tablename__ = "job_applications"

    id = Column(Integer, primary_key=True, index=True)

    # Foreign keys
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id"), nullable=False, index=True)

    status = Column(String(20), default=ApplicationStatus.PENDING.value)

    # Match score (overwritten on every recalculation)
    match_score = Column(Numeric(5, 2))  # 0-100
    match_breakdown = Column(JSON)  # semanticScore, skillScore, experienceScore, educationScore
    match_reasons = Column(JSON)  # ordered, user-facing
    match_calculated_at = Column(DateTime(timezone=True))

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    job = relationship("Job", back_populates="applications")
    candidate = relationship("Candidate", back_populates="applications")

    __table_args__ = (
        UniqueConstraint("job_id", "candidate_id", name="uq_application_job_candidate"),
    )
