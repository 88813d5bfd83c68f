"""
Candidate vector index tasks
"""
from celery import Task
from sqlalchemy.orm import Session
import structlog

from app.core.celery_app import celery_app
from app.core.database import SessionLocal
from app.candidates.vector_service import candidate_vector_service
from app.models.candidate import Candidate

logger = structlog.get_logger()


@celery_app.task(name="candidate.vectorize")
def vectorize_candidate_task(candidate_id: int) -> bool:
    """Re-vectorize after a manual edit"""
    db: Session = SessionLocal()
    try:
        candidate = db.query(Candidate).filter(Candidate.id == candidate_id).first()
        if not candidate:
            logger.warning("vectorize_candidate_missing", candidate_id=candidate_id)
            return False
        return candidate_vector_service.vectorize_candidate(db, candidate)
    finally:
        db.close()


@celery_app.task(bind=True, name="candidate.reconcile_vectors", max_retries=1)
def reconcile_vectors_task(self: Task) -> int:
    """Periodic removal of vectors whose candidate no longer exists"""
    db: Session = SessionLocal()
    try:
        removed = candidate_vector_service.reconcile_index(db)
        return len(removed)
    except Exception as e:
        logger.exception("vector_reconcile_failed", error=str(e))
        raise self.retry(exc=e, countdown=300)
    finally:
        db.close()
