"""
Resume processing tasks
"""
from typing import Any, Dict
from celery import Task
from sqlalchemy.orm import Session
import structlog

from app.core.celery_app import celery_app
from app.core.database import SessionLocal
from app.resumes.consumer import resume_parse_consumer

logger = structlog.get_logger()


@celery_app.task(bind=True, name="resume.parse")
def parse_resume_task(self: Task, message: Dict[str, Any]) -> str:
    """
    Consume one resume.parse message.

    Retries are republished by the consumer with the counter in the message
    body, so Celery's own retry machinery is not used here.
    """
    db: Session = SessionLocal()
    try:
        outcome = resume_parse_consumer.handle(db, message)
        logger.info(
            "resume_parse_task_finished",
            celery_task_id=self.request.id,
            task_id=message.get("taskId"),
            outcome=outcome.value,
        )
        return outcome.value
    finally:
        db.close()


@celery_app.task(name="resume.parse.dead_letter")
def dead_letter_task(message: Dict[str, Any], error: str) -> None:
    """Runs only on a worker started with -Q for the dead-letter queue; default workers leave it held"""
    logger.error(
        "resume_parse_dead_letter",
        task_id=message.get("taskId"),
        resume_id=message.get("resumeId"),
        retry_count=message.get("retryCount"),
        error=error,
    )
