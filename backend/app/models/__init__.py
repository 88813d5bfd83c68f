"""
Database models
"""
from app.models.resume import Resume
from app.models.candidate import Candidate
from app.models.job import Job
from app.models.application import JobApplication

__all__ = [
    "Resume",
    "Candidate",
    "Job",
    "JobApplication",
]
