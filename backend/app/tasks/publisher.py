"""
Task publishing by name

Producers go through these helpers instead of importing task functions, so
services never import the worker modules that import them back.
"""
from typing import Any, Dict, Optional
import structlog

from app.core.celery_app import celery_app
from app.core.config import settings

logger = structlog.get_logger()

RESUME_PARSE_TASK = "resume.parse"
RESUME_PARSE_DEAD_LETTER_TASK = "resume.parse.dead_letter"
CANDIDATE_VECTORIZE_TASK = "candidate.vectorize"
MATCH_SCORE_TASK = "matching.calculate_score"


class TaskPublisher:
    """Publishes the pipeline's messages onto their queues"""

    def publish_resume_parse(self, message: Dict[str, Any], countdown: Optional[int] = None) -> None:
        """Raises on broker failure; callers decide what that means"""
        celery_app.send_task(
            RESUME_PARSE_TASK,
            args=[message],
            queue=settings.RESUME_PARSE_QUEUE,
            countdown=countdown,
        )
        logger.info(
            "resume_parse_published",
            task_id=message.get("taskId"),
            resume_id=message.get("resumeId"),
            retry_count=message.get("retryCount"),
            countdown=countdown,
        )

    def publish_dead_letter(self, message: Dict[str, Any], error: str) -> None:
        celery_app.send_task(
            RESUME_PARSE_DEAD_LETTER_TASK,
            args=[message, error],
            queue=settings.RESUME_PARSE_DEAD_LETTER_QUEUE,
        )
        logger.warning(
            "resume_parse_dead_lettered",
            task_id=message.get("taskId"),
            resume_id=message.get("resumeId"),
            retry_count=message.get("retryCount"),
            error=error,
        )

    def dispatch_vectorize(self, candidate_id: int) -> None:
        """Fire-and-forget; a broker outage only costs index freshness"""
        try:
            celery_app.send_task(
                CANDIDATE_VECTORIZE_TASK,
                args=[candidate_id],
                queue=settings.CANDIDATE_VECTORIZE_QUEUE,
            )
        except Exception as e:
            logger.error("vectorize_dispatch_failed", candidate_id=candidate_id, error=str(e))

    def dispatch_match_score(self, application_id: int) -> None:
        """Fire-and-forget; the score can be recomputed synchronously later"""
        try:
            celery_app.send_task(
                MATCH_SCORE_TASK,
                args=[application_id],
                queue=settings.MATCHING_QUEUE,
            )
        except Exception as e:
            logger.error("match_score_dispatch_failed", application_id=application_id, error=str(e))


# Global instance
task_publisher = TaskPublisher()
