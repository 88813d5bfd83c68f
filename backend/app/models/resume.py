"""
Resume models
"""
from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.enums import ResumeStatus


class Resume(Base):
    """Uploaded resume file, unique per content hash"""

    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(BigInteger, nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)  # storage object name
    file_hash = Column(String(32), nullable=False, unique=True)  # MD5 hex, dedup key
    file_size = Column(Integer)  # in bytes
    declared_type = Column(String(100))  # Content-Type sent by the client
    sniffed_type = Column(String(100))  # Content-Type from magic bytes
    status = Column(String(20), nullable=False, default=ResumeStatus.QUEUED.value)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    candidate = relationship("Candidate", back_populates="resume", uselist=False)
