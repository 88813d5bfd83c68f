"""
Matching service - job applications and their persisted match scores
"""
from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from app.core.exceptions import NotFoundError, ValidationError
from app.matching.scoring import MatchResult, scoring_engine
from app.models.application import JobApplication
from app.models.candidate import Candidate
from app.models.enums import ApplicationStatus
from app.models.job import Job
from app.tasks.publisher import task_publisher

logger = structlog.get_logger()


class MatchScoreService:
    """Computes and persists the match score of one application"""

    def __init__(self, engine=None):
        self.scoring_engine = engine or scoring_engine

    def calculate_and_save(self, db: Session, application_id: int) -> JobApplication:
        """
        Recompute the score and overwrite the previous one.

        Shared by the synchronous endpoint and the background task so both
        paths produce identical results.
        """
        application = db.query(JobApplication).filter(JobApplication.id == application_id).first()
        if not application:
            raise NotFoundError("Application", str(application_id))
        job = db.query(Job).filter(Job.id == application.job_id).first()
        if not job:
            raise NotFoundError("Job", str(application.job_id))
        candidate = db.query(Candidate).filter(Candidate.id == application.candidate_id).first()
        if not candidate:
            raise NotFoundError("Candidate", str(application.candidate_id))

        result: MatchResult = self.scoring_engine.calculate(job, candidate)

        application.match_score = result.total_score
        application.match_breakdown = result.breakdown
        application.match_reasons = list(result.reasons)
        application.match_calculated_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(application)

        logger.info(
            "match_score_calculated",
            application_id=application_id,
            job_id=job.id,
            candidate_id=candidate.id,
            total_score=str(result.total_score),
        )
        return application


class ApplicationService:
    """Creates applications and schedules their first score"""

    def __init__(self, publisher=None):
        self.publisher = publisher or task_publisher

    def create(self, db: Session, job_id: int, candidate_id: int) -> JobApplication:
        if not db.query(Job.id).filter(Job.id == job_id).first():
            raise NotFoundError("Job", str(job_id))
        if not db.query(Candidate.id).filter(Candidate.id == candidate_id).first():
            raise NotFoundError("Candidate", str(candidate_id))

        application = JobApplication(
            job_id=job_id,
            candidate_id=candidate_id,
            status=ApplicationStatus.PENDING.value,
        )
        db.add(application)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(
                "Candidate has already applied to this job",
                details={"job_id": job_id, "candidate_id": candidate_id},
            )
        db.refresh(application)
        logger.info("application_created", application_id=application.id, job_id=job_id, candidate_id=candidate_id)

        self.publisher.dispatch_match_score(application.id)
        return application

    def get(self, db: Session, application_id: int) -> JobApplication:
        application = db.query(JobApplication).filter(JobApplication.id == application_id).first()
        if not application:
            raise NotFoundError("Application", str(application_id))
        return application


# Global instances
match_score_service = MatchScoreService()
application_service = ApplicationService()
