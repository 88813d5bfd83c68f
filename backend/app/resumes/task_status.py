"""
Advisory ingestion task status kept in Redis

The record is observability data for polling clients. Losing a write never
changes pipeline behaviour, so Redis errors are logged and swallowed here.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json
import structlog

from app.core import redis_client as redis_store
from app.core.config import settings
from app.models.enums import TaskStatus

logger = structlog.get_logger()

NOT_FOUND = "NOT_FOUND"


def _key(task_id: str) -> str:
    return f"{redis_store.RESUME_TASK_KEY_PREFIX}{task_id}"


def get_task_status(task_id: str) -> Dict[str, Any]:
    """Current record, or a NOT_FOUND placeholder once it expired or never existed"""
    try:
        raw = redis_store.redis_client.get(_key(task_id))
    except Exception as e:
        logger.error("task_status_read_failed", task_id=task_id, error=str(e))
        raw = None
    if not raw:
        return {"taskId": task_id, "status": NOT_FOUND, "progress": 0}
    return json.loads(raw)


def update_task_status(
    task_id: str,
    status: TaskStatus,
    progress: int,
    resume_id: Optional[int] = None,
    candidate_id: Optional[int] = None,
    error_message: Optional[str] = None,
    retry_count: Optional[int] = None,
) -> Dict[str, Any]:
    """Merge the new state into the record and reset its retention window"""
    key = _key(task_id)
    record: Dict[str, Any] = {"taskId": task_id}
    try:
        raw = redis_store.redis_client.get(key)
        if raw:
            record.update(json.loads(raw))
    except Exception as e:
        logger.warning("task_status_merge_failed", task_id=task_id, error=str(e))

    record["status"] = TaskStatus.parse(status).value
    record["progress"] = max(0, min(100, int(progress)))
    record["errorMessage"] = error_message
    if resume_id is not None:
        record["resumeId"] = resume_id
    if candidate_id is not None:
        record["candidateId"] = candidate_id
    if retry_count is not None:
        record["retryCount"] = retry_count
        record["maxRetries"] = settings.RESUME_PARSE_MAX_RETRIES
    record["updatedAt"] = datetime.now(timezone.utc).isoformat()

    try:
        redis_store.redis_client.setex(key, settings.TASK_STATUS_TTL_HOURS * 3600, json.dumps(record))
    except Exception as e:
        logger.error("task_status_write_failed", task_id=task_id, status=record["status"], error=str(e))
    return record
