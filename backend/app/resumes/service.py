"""
Resume ingestion: the dedup gate in front of the parse queue
"""
import hashlib
import uuid
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from app.auth.dependencies import CurrentUser
from app.core import redis_client as redis_store
from app.core.config import settings
from app.core.exceptions import (
    ATSException,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from app.models.enums import ResumeStatus, TaskStatus
from app.models.resume import Resume
from app.resumes.extractor import SUPPORTED_MEDIA_TYPES, normalize_media_type, sniff_media_type
from app.resumes.schemas import ResumeParseMessage
from app.resumes.storage import file_storage, sanitize_file_name
from app.resumes.task_status import update_task_status
from app.tasks.publisher import task_publisher

logger = structlog.get_logger()

ADMIN_ROLE = "admin"


def compute_file_hash(content: bytes) -> str:
    """MD5 hex digest; content identity for dedup, not a security boundary"""
    return hashlib.md5(content).hexdigest()


def _dedup_key(file_hash: str) -> str:
    return f"{redis_store.RESUME_DEDUP_KEY_PREFIX}{file_hash}"


class ResumeService:
    """Admits uploads, answers duplicates and feeds the parse queue"""

    def __init__(self, storage=None, publisher=None):
        self.storage = storage or file_storage
        self.publisher = publisher or task_publisher

    def validate_upload(self, content: bytes, declared_type: Optional[str]) -> Tuple[str, str]:
        """Returns (declared, sniffed) media types or raises ValidationError"""
        if not content:
            raise ValidationError("Uploaded file is empty")
        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if len(content) > max_bytes:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {settings.MAX_UPLOAD_SIZE_MB}MB",
                details={"size": len(content), "max_size": max_bytes},
            )

        declared = normalize_media_type(declared_type)
        if declared not in SUPPORTED_MEDIA_TYPES:
            raise ValidationError(
                "File type not allowed, only PDF, DOC and DOCX are accepted",
                details={"declared_type": declared_type},
            )
        sniffed = sniff_media_type(content)
        if sniffed != declared:
            raise ValidationError(
                "File content does not match its declared type",
                details={"declared_type": declared, "sniffed_type": sniffed},
            )
        return declared, sniffed

    def _find_cached_duplicate(self, db: Session, file_hash: str) -> Optional[Resume]:
        try:
            cached_id = redis_store.redis_client.get(_dedup_key(file_hash))
        except Exception as e:
            logger.warning("dedup_cache_read_failed", file_hash=file_hash, error=str(e))
            return None
        if not cached_id:
            return None
        resume = db.query(Resume).filter(Resume.id == int(cached_id)).first()
        if resume is None or resume.file_hash != file_hash:
            # Stale mapping; the durable store decides
            logger.info("dedup_cache_stale", file_hash=file_hash, cached_id=cached_id)
            return None
        return resume

    def _find_by_hash(self, db: Session, file_hash: str) -> Optional[Resume]:
        return db.query(Resume).filter(Resume.file_hash == file_hash).first()

    def _remember_hash(self, file_hash: str, resume_id: int) -> None:
        try:
            redis_store.set_if_absent(_dedup_key(file_hash), str(resume_id), settings.DEDUP_TTL_DAYS * 86400)
        except Exception as e:
            logger.warning("dedup_cache_write_failed", file_hash=file_hash, error=str(e))

    def _discard_file(self, object_name: str) -> None:
        try:
            self.storage.delete(object_name)
        except Exception as e:
            logger.warning("resume_file_cleanup_failed", object_name=object_name, error=str(e))

    def _duplicate(self, resume: Resume, file_hash: str, source: str) -> Dict[str, Any]:
        logger.info("resume_upload_duplicate", resume_id=resume.id, file_hash=file_hash, source=source)
        return {"taskId": None, "resumeId": resume.id, "duplicated": True}

    def upload_resume(
        self,
        db: Session,
        content: bytes,
        file_name: Optional[str],
        declared_type: Optional[str],
        owner_id: int,
    ) -> Dict[str, Any]:
        """
        Admit one file.

        Identical bytes always resolve to the same resume id and are queued at
        most once; the UNIQUE constraint on file_hash settles concurrent uploads.
        """
        declared, sniffed = self.validate_upload(content, declared_type)
        file_hash = compute_file_hash(content)

        resume = self._find_cached_duplicate(db, file_hash)
        if resume is not None:
            return self._duplicate(resume, file_hash, "cache")

        resume = self._find_by_hash(db, file_hash)
        if resume is not None:
            self._remember_hash(file_hash, resume.id)
            return self._duplicate(resume, file_hash, "database")

        safe_name = sanitize_file_name(file_name)
        object_name = self.storage.save(self.storage.build_object_name(file_hash, safe_name), content)

        resume = Resume(
            owner_id=owner_id,
            file_name=safe_name,
            file_path=object_name,
            file_hash=file_hash,
            file_size=len(content),
            declared_type=declared,
            sniffed_type=sniffed,
            status=ResumeStatus.QUEUED.value,
        )
        db.add(resume)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            winner = db.query(Resume).filter(Resume.file_hash == file_hash).first()
            # Same bytes and name on the same day share one object
            if winner is None or winner.file_path != object_name:
                self._discard_file(object_name)
            if winner is None:
                raise
            self._remember_hash(file_hash, winner.id)
            return self._duplicate(winner, file_hash, "constraint")
        except Exception:
            db.rollback()
            self._discard_file(object_name)
            raise
        db.refresh(resume)

        self._remember_hash(file_hash, resume.id)
        task_id = self._enqueue(resume, owner_id)
        logger.info("resume_uploaded", resume_id=resume.id, task_id=task_id, file_name=safe_name, size=len(content))
        return {"taskId": task_id, "resumeId": resume.id, "duplicated": False}

    def _enqueue(self, resume: Resume, owner_id: int) -> str:
        """Create a task record and publish; a broker failure only marks the task FAILED"""
        task_id = str(uuid.uuid4())
        update_task_status(task_id, TaskStatus.QUEUED, 0, resume_id=resume.id)
        message = ResumeParseMessage(
            task_id=task_id,
            resume_id=resume.id,
            owner_id=owner_id,
            content_hash=resume.file_hash,
            retry_count=0,
        )
        try:
            self.publisher.publish_resume_parse(message.to_payload())
        except Exception as e:
            logger.error("resume_parse_publish_failed", task_id=task_id, resume_id=resume.id, error=str(e))
            update_task_status(
                task_id,
                TaskStatus.FAILED,
                0,
                resume_id=resume.id,
                error_message=f"Failed to queue resume for parsing: {e}",
            )
        return task_id

    def batch_upload(self, db: Session, files: List[Tuple[bytes, Optional[str], Optional[str]]], owner_id: int) -> Dict[str, Any]:
        """Each (content, file_name, content_type) goes through the gate independently"""
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > settings.MAX_BATCH_UPLOAD_FILES:
            raise ValidationError(
                f"At most {settings.MAX_BATCH_UPLOAD_FILES} files per batch",
                details={"count": len(files)},
            )

        calls = redis_store.increment_with_window(f"{redis_store.UPLOAD_RATE_LIMIT_KEY_PREFIX}{owner_id}", 60)
        if calls > settings.MAX_BATCH_UPLOADS_PER_MINUTE:
            logger.warning("batch_upload_rate_limited", owner_id=owner_id, calls=calls)
            raise RateLimitError(
                f"At most {settings.MAX_BATCH_UPLOADS_PER_MINUTE} batch uploads per minute",
                details={"retry_after_seconds": 60},
            )

        items = []
        for content, file_name, content_type in files:
            name = file_name or "resume"
            try:
                result = self.upload_resume(db, content, file_name, content_type, owner_id)
            except ATSException as e:
                items.append({"fileName": name, "status": "FAILED", "errorMessage": e.message})
                continue
            except Exception as e:
                db.rollback()
                logger.exception("batch_upload_item_failed", file_name=name, error=str(e))
                items.append({"fileName": name, "status": "FAILED", "errorMessage": "Internal error"})
                continue
            items.append({
                "fileName": name,
                "status": "DUPLICATE" if result["duplicated"] else "QUEUED",
                "taskId": result["taskId"],
                "resumeId": result["resumeId"],
            })

        summary = {
            "total": len(items),
            "queued": sum(1 for item in items if item["status"] == "QUEUED"),
            "duplicated": sum(1 for item in items if item["status"] == "DUPLICATE"),
            "failed": sum(1 for item in items if item["status"] == "FAILED"),
            "items": items,
        }
        logger.info("batch_upload_completed", owner_id=owner_id, **{k: v for k, v in summary.items() if k != "items"})
        return summary

    def get_resume(self, db: Session, resume_id: int, user: CurrentUser) -> Resume:
        resume = db.query(Resume).filter(Resume.id == resume_id).first()
        if not resume:
            raise NotFoundError("Resume", str(resume_id))
        if resume.owner_id != user.id and ADMIN_ROLE not in user.roles:
            raise AuthorizationError("Not the owner of this resume")
        return resume

    def list_resumes(
        self,
        db: Session,
        owner_id: int,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[int, List[Resume]]:
        query = db.query(Resume).filter(Resume.owner_id == owner_id)
        if status:
            query = query.filter(Resume.status == ResumeStatus.parse(status).value)
        total = query.with_entities(func.count(Resume.id)).scalar() or 0
        rows = (
            query.order_by(Resume.created_at.desc(), Resume.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return total, rows

    def reprocess(self, db: Session, resume_id: int, user: CurrentUser) -> Dict[str, Any]:
        """
        Queue an existing resume for a fresh parse.

        Refused while a worker holds the resume. The marker is cleared only for
        finished resumes, where it is a leftover of the last run.
        """
        resume = self.get_resume(db, resume_id, user)
        marker_key = f"{redis_store.RESUME_IDEMPOTENT_KEY_PREFIX}{resume.id}"
        if resume.status in (ResumeStatus.COMPLETED.value, ResumeStatus.FAILED.value):
            redis_store.redis_client.delete(marker_key)
        elif redis_store.redis_client.exists(marker_key):
            logger.info("resume_reprocess_refused", resume_id=resume.id, status=resume.status)
            raise ConflictError(
                "Resume is being parsed, reprocess it once the current run finishes",
                details={"resume_id": resume.id, "status": resume.status},
            )

        resume.status = ResumeStatus.QUEUED.value
        resume.error_message = None
        db.commit()

        task_id = self._enqueue(resume, resume.owner_id)
        logger.info("resume_reprocess_queued", resume_id=resume.id, task_id=task_id)
        return {"taskId": task_id, "resumeId": resume.id, "duplicated": False}


# Global instance
resume_service = ResumeService()
