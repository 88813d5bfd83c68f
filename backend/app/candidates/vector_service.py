"""
Candidate vectorization: summary text, embedding, index upsert

Vectorization is an enrichment step. Failures here are logged and never
propagate into resume ingestion or candidate edits.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
import structlog

from app.ai_engine.service import ai_engine
from app.core.config import settings
from app.core.redis_client import CANDIDATE_CACHE_KEY_PREFIX, delete_cache
from app.models.candidate import Candidate
from app.models.enums import Gender
from app.vector_store.service import vector_store

logger = structlog.get_logger()

_WORK_KEYS = ("company", "position", "startDate", "endDate", "description")
_PROJECT_KEYS = ("name", "role", "startDate", "endDate", "description", "technologies")


def _format_entry(entry: Dict[str, Any], keys) -> str:
    parts = []
    for key in keys:
        value = entry.get(key)
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value if v)
        if value:
            parts.append(str(value).strip())
    return " | ".join(parts)


def _history_lines(entries: Optional[List[Dict[str, Any]]], keys) -> List[str]:
    lines = []
    for entry in entries or []:
        if isinstance(entry, dict):
            line = _format_entry(entry, keys)
            if line:
                lines.append(f"- {line}")
    return lines


def build_candidate_text(candidate: Candidate) -> str:
    """
    Embedding input for one candidate.

    Sections appear in a fixed order (identity, education, employment, skills,
    history, self-evaluation) and absent fields are skipped. The result is cut
    to EMBEDDING_MAX_TEXT_LENGTH characters.
    """
    lines: List[str] = []

    if candidate.name:
        lines.append(f"Name: {candidate.name}")
    if candidate.gender and candidate.gender != Gender.UNKNOWN.value:
        lines.append(f"Gender: {candidate.gender}")

    if candidate.education:
        lines.append(f"Education: {candidate.education}")
    if candidate.school:
        lines.append(f"School: {candidate.school}")
    if candidate.major:
        lines.append(f"Major: {candidate.major}")

    if candidate.work_years is not None:
        lines.append(f"Work experience: {candidate.work_years} years")
    if candidate.current_company:
        lines.append(f"Current company: {candidate.current_company}")
    if candidate.current_position:
        lines.append(f"Current position: {candidate.current_position}")

    if candidate.skills:
        lines.append("Skills: " + ", ".join(str(skill) for skill in candidate.skills))

    work_lines = _history_lines(candidate.work_experience, _WORK_KEYS)
    if work_lines:
        lines.append("Work history:")
        lines.extend(work_lines)
    project_lines = _history_lines(candidate.project_experience, _PROJECT_KEYS)
    if project_lines:
        lines.append("Projects:")
        lines.extend(project_lines)

    if candidate.self_evaluation:
        lines.append(f"Self evaluation: {candidate.self_evaluation}")

    text = "\n".join(lines)
    limit = settings.EMBEDDING_MAX_TEXT_LENGTH
    if len(text) > limit:
        logger.warning("candidate_text_truncated", candidate_id=candidate.id, length=len(text), limit=limit)
        text = text[:limit]
    return text


class CandidateVectorService:
    """Keeps the vector index in step with the candidates table"""

    def __init__(self, engine=None, store=None):
        self.ai_engine = engine or ai_engine
        self.vector_store = store or vector_store

    def vectorize_candidate(self, db: Session, candidate: Candidate) -> bool:
        """Embed and index one candidate; returns False instead of raising"""
        try:
            text = build_candidate_text(candidate)
            if not text:
                logger.warning("candidate_text_empty", candidate_id=candidate.id)
                return False
            embedding = self.ai_engine.generate_embedding(text)
            vector_id = self.vector_store.upsert_vector(candidate.id, embedding, candidate.name)

            # Both fields land in one commit
            candidate.vector_id = vector_id
            candidate.ai_summary = text
            db.commit()
            delete_cache(f"{CANDIDATE_CACHE_KEY_PREFIX}{candidate.id}")
            logger.info("candidate_vectorized", candidate_id=candidate.id, vector_id=vector_id)
            return True
        except Exception as e:
            db.rollback()
            logger.error("candidate_vectorization_failed", candidate_id=candidate.id, error=str(e))
            return False

    def delete_vector(self, candidate_id: int) -> bool:
        try:
            self.vector_store.delete_vector(candidate_id)
            logger.info("candidate_vector_deleted", candidate_id=candidate_id)
            return True
        except Exception as e:
            logger.error("candidate_vector_delete_failed", candidate_id=candidate_id, error=str(e))
            return False

    def reconcile_index(self, db: Session) -> List[int]:
        """
        Delete index entries whose candidate row is gone.

        Bounds index/store drift to one run of this job. Errors propagate so
        the periodic task records the failure.
        """
        indexed_ids = self.vector_store.list_candidate_ids()
        if not indexed_ids:
            return []

        existing = set()
        for start in range(0, len(indexed_ids), 1000):
            chunk = indexed_ids[start:start + 1000]
            rows = db.query(Candidate.id).filter(Candidate.id.in_(chunk)).all()
            existing.update(row[0] for row in rows)

        orphans = [candidate_id for candidate_id in indexed_ids if candidate_id not in existing]
        for candidate_id in orphans:
            self.vector_store.delete_vector(candidate_id)
        logger.info("vector_index_reconciled", indexed=len(indexed_ids), removed=len(orphans))
        return orphans


# Global instance
candidate_vector_service = CandidateVectorService()
