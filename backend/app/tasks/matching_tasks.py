"""
Matching and scoring tasks
"""
from typing import Optional
from sqlalchemy.orm import Session
import structlog

from app.core.celery_app import celery_app
from app.core.database import SessionLocal
from app.matching.service import match_score_service

logger = structlog.get_logger()


@celery_app.task(name="matching.calculate_score")
def calculate_match_score_task(application_id: int) -> Optional[float]:
    """Score a new application in the background; failures are logged, never raised"""
    db: Session = SessionLocal()
    try:
        application = match_score_service.calculate_and_save(db, application_id)
        return float(application.match_score)
    except Exception as e:
        db.rollback()
        logger.exception("match_score_task_failed", application_id=application_id, error=str(e))
        return None
    finally:
        db.close()
