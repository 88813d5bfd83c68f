"""
Idempotent consumer of the resume.parse queue

Delivery is at-least-once. The idempotency marker in Redis turns concurrent
or repeated deliveries of the same resume into a no-op while one worker holds
it; the retry counter travels inside the message body.
"""
from enum import Enum
from typing import Any, Dict
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
import structlog

from app.candidates.service import candidate_service
from app.candidates.vector_service import candidate_vector_service
from app.core import redis_client as redis_store
from app.core.config import settings
from app.core.exceptions import is_retryable
from app.models.enums import ResumeStatus, TaskStatus
from app.models.resume import Resume
from app.resumes.ai_parser import ai_parser
from app.resumes.extractor import content_extractor
from app.resumes.schemas import ResumeParseMessage
from app.resumes.storage import file_storage
from app.resumes.task_status import update_task_status
from app.tasks.publisher import task_publisher

logger = structlog.get_logger()


class ConsumeOutcome(str, Enum):
    """How one delivery ended; every outcome acknowledges the delivery"""
    DUPLICATE = "DUPLICATE"  # another worker holds (or just finished) this resume
    REJECTED = "REJECTED"  # permanent failure, no retry
    COMPLETED = "COMPLETED"
    RETRY = "RETRY"  # republished with retry_count + 1
    DEAD_LETTER = "DEAD_LETTER"  # retries exhausted


def retry_delay(retry_count: int) -> int:
    """Backoff before attempt retry_count + 1"""
    delays = settings.RESUME_PARSE_RETRY_DELAYS
    return delays[min(retry_count, len(delays) - 1)]


class ResumeParseConsumer:
    """Runs one resume through extract, AI parse, persist and vectorize"""

    def __init__(
        self,
        storage=None,
        extractor=None,
        parser=None,
        candidates=None,
        vectors=None,
        publisher=None,
    ):
        self.storage = storage or file_storage
        self.extractor = extractor or content_extractor
        self.parser = parser or ai_parser
        self.candidates = candidates or candidate_service
        self.vectors = vectors or candidate_vector_service
        self.publisher = publisher or task_publisher

    @staticmethod
    def _marker_key(resume_id: int) -> str:
        return f"{redis_store.RESUME_IDEMPOTENT_KEY_PREFIX}{resume_id}"

    def handle(self, db: Session, payload: Dict[str, Any]) -> ConsumeOutcome:
        try:
            message = ResumeParseMessage.model_validate(payload)
        except PydanticValidationError as e:
            logger.error("resume_parse_message_invalid", payload=payload, error=str(e))
            return ConsumeOutcome.REJECTED

        log = logger.bind(task_id=message.task_id, resume_id=message.resume_id, retry_count=message.retry_count)

        marker_key = self._marker_key(message.resume_id)
        if not redis_store.set_if_absent(marker_key, "1", settings.IDEMPOTENCY_TTL_HOURS * 3600):
            log.info("resume_parse_duplicate_delivery")
            return ConsumeOutcome.DUPLICATE

        try:
            return self._process(db, message, log)
        except Exception as e:
            db.rollback()
            return self._handle_failure(db, message, e, log)

    def _process(self, db: Session, message: ResumeParseMessage, log) -> ConsumeOutcome:
        update_task_status(message.task_id, TaskStatus.PROCESSING, 10, resume_id=message.resume_id)

        resume = db.query(Resume).filter(Resume.id == message.resume_id).first()
        if resume is None:
            log.error("resume_parse_resume_missing")
            update_task_status(
                message.task_id, TaskStatus.FAILED, 0,
                resume_id=message.resume_id, error_message="Resume not found",
            )
            return ConsumeOutcome.REJECTED

        if resume.status == ResumeStatus.COMPLETED.value:
            # Redelivery after the marker expired
            candidate_id = resume.candidate.id if resume.candidate else None
            log.info("resume_parse_already_completed", candidate_id=candidate_id)
            update_task_status(
                message.task_id, TaskStatus.COMPLETED, 100,
                resume_id=resume.id, candidate_id=candidate_id,
            )
            return ConsumeOutcome.COMPLETED

        resume.status = ResumeStatus.PARSING.value
        db.commit()

        content = self.storage.read(resume.file_path)
        text = self.extractor.extract_text(content, resume.sniffed_type or resume.declared_type)
        update_task_status(message.task_id, TaskStatus.PROCESSING, 30, resume_id=resume.id)

        result = self.parser.parse(text)
        update_task_status(message.task_id, TaskStatus.PROCESSING, 70, resume_id=resume.id)

        candidate = self.candidates.upsert_from_parse(db, resume.id, result.info, result.raw_response)
        update_task_status(
            message.task_id, TaskStatus.PROCESSING, 85,
            resume_id=resume.id, candidate_id=candidate.id,
        )

        # Never raises; a missing vector is repaired by a later edit or reprocess
        self.vectors.vectorize_candidate(db, candidate)
        update_task_status(
            message.task_id, TaskStatus.PROCESSING, 95,
            resume_id=resume.id, candidate_id=candidate.id,
        )

        resume.status = ResumeStatus.COMPLETED.value
        resume.error_message = None
        db.commit()

        update_task_status(
            message.task_id, TaskStatus.COMPLETED, 100,
            resume_id=resume.id, candidate_id=candidate.id,
        )
        log.info("resume_parse_completed", candidate_id=candidate.id)
        return ConsumeOutcome.COMPLETED

    def _handle_failure(
        self,
        db: Session,
        message: ResumeParseMessage,
        error: BaseException,
        log,
    ) -> ConsumeOutcome:
        error_message = getattr(error, "message", None) or str(error) or error.__class__.__name__

        # Release the resume so the retry (or a manual reprocess) can take it
        try:
            redis_store.redis_client.delete(self._marker_key(message.resume_id))
        except Exception as e:
            log.error("idempotency_marker_release_failed", error=str(e))

        update_task_status(
            message.task_id, TaskStatus.FAILED, 0,
            resume_id=message.resume_id,
            error_message=error_message,
            retry_count=message.retry_count,
        )

        if not is_retryable(error):
            log.warning("resume_parse_rejected", error=error_message, error_type=error.__class__.__name__)
            self._mark_failed(db, message.resume_id, error_message, log)
            return ConsumeOutcome.REJECTED

        if message.retry_count < settings.RESUME_PARSE_MAX_RETRIES:
            countdown = retry_delay(message.retry_count)
            log.warning("resume_parse_retry_scheduled", error=error_message, countdown=countdown)
            self.publisher.publish_resume_parse(message.next_attempt().to_payload(), countdown=countdown)
            return ConsumeOutcome.RETRY

        log.error("resume_parse_retries_exhausted", error=error_message)
        self._mark_failed(db, message.resume_id, error_message, log)
        self.publisher.publish_dead_letter(message.to_payload(), error_message)
        return ConsumeOutcome.DEAD_LETTER

    def _mark_failed(self, db: Session, resume_id: int, error_message: str, log) -> None:
        try:
            resume = db.query(Resume).filter(Resume.id == resume_id).first()
            if resume is not None:
                resume.status = ResumeStatus.FAILED.value
                resume.error_message = error_message[:2000]
                db.commit()
        except Exception as e:
            db.rollback()
            log.error("resume_status_update_failed", error=str(e))


# Global instance
resume_parse_consumer = ResumeParseConsumer()

