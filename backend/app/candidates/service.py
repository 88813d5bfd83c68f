"""
Candidate store: upsert from AI parse results, reads and manual edits
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
import structlog

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.redis_client import (
    CANDIDATE_CACHE_KEY_PREFIX,
    get_cache,
    set_cache,
    delete_cache,
)
from app.candidates.schemas import CandidateResponse, CandidateUpdate
from app.candidates.vector_service import candidate_vector_service
from app.models.candidate import Candidate
from app.models.enums import Gender
from app.resumes.ai_parser import CandidateInfo
from app.tasks.publisher import task_publisher

logger = structlog.get_logger()

_MALE_ALIASES = {"男", "male", "m", "boy", "man", "先生"}
_FEMALE_ALIASES = {"女", "female", "f", "girl", "woman", "女士"}


def normalize_gender(raw: Optional[str]) -> Gender:
    """Map free-text gender onto MALE/FEMALE; anything unrecognised is UNKNOWN"""
    if raw is None:
        return Gender.UNKNOWN
    value = str(raw).strip().lower()
    if value in _MALE_ALIASES or value == Gender.MALE.value.lower():
        return Gender.MALE
    if value in _FEMALE_ALIASES or value == Gender.FEMALE.value.lower():
        return Gender.FEMALE
    return Gender.UNKNOWN


def _as_history(entries: Optional[List[Any]]) -> List[Dict[str, Any]]:
    """Keep history as plain string-keyed dicts, dropping anything else"""
    history = []
    for entry in entries or []:
        if hasattr(entry, "model_dump"):
            entry = entry.model_dump()
        if isinstance(entry, dict):
            history.append({str(key): value for key, value in entry.items()})
    return history


def _cache_key(candidate_id: int) -> str:
    return f"{CANDIDATE_CACHE_KEY_PREFIX}{candidate_id}"


class CandidateService:
    """Read/write access to candidates; the only writer outside vectorization"""

    def __init__(self, vector_service=None, publisher=None):
        self.vector_service = vector_service or candidate_vector_service
        self.publisher = publisher or task_publisher

    def upsert_from_parse(
        self,
        db: Session,
        resume_id: int,
        info: CandidateInfo,
        raw_json: str,
    ) -> Candidate:
        """Create or update the single candidate for a resume"""
        candidate = db.query(Candidate).filter(Candidate.resume_id == resume_id).first()
        created = candidate is None
        if created:
            candidate = Candidate(resume_id=resume_id)
            db.add(candidate)

        candidate.name = info.name
        candidate.phone = info.phone
        candidate.email = info.email
        candidate.gender = normalize_gender(info.gender).value
        candidate.age = info.age
        candidate.education = info.education
        candidate.school = info.school
        candidate.major = info.major
        candidate.graduation_year = info.graduation_year
        candidate.work_years = info.work_years
        candidate.current_company = info.current_company
        candidate.current_position = info.current_position
        candidate.skills = list(info.skills)
        candidate.work_experience = _as_history(info.work_experience)
        candidate.project_experience = _as_history(info.project_experience)
        candidate.self_evaluation = info.self_evaluation
        candidate.raw_json = raw_json
        candidate.parsed_at = datetime.now(timezone.utc)

        db.commit()
        db.refresh(candidate)
        delete_cache(_cache_key(candidate.id))

        logger.info(
            "candidate_created" if created else "candidate_updated_from_parse",
            candidate_id=candidate.id,
            resume_id=resume_id,
        )
        return candidate

    def get_by_id(self, db: Session, candidate_id: int) -> Candidate:
        candidate = db.query(Candidate).filter(Candidate.id == candidate_id).first()
        if not candidate:
            raise NotFoundError("Candidate", str(candidate_id))
        return candidate

    def get_detail(self, db: Session, candidate_id: int) -> Dict[str, Any]:
        """Serialised candidate, read through the Redis cache"""
        key = _cache_key(candidate_id)
        cached = get_cache(key)
        if cached:
            return cached

        candidate = self.get_by_id(db, candidate_id)
        detail = CandidateResponse.model_validate(candidate).model_dump(mode="json", by_alias=True)
        set_cache(key, detail, ttl=settings.CANDIDATE_CACHE_TTL)
        return detail

    def get_by_ids(self, db: Session, candidate_ids: List[int]) -> Dict[int, Candidate]:
        """One query for many ids; missing ids are simply absent from the map"""
        if not candidate_ids:
            return {}
        rows = db.query(Candidate).filter(Candidate.id.in_(set(candidate_ids))).all()
        return {row.id: row for row in rows}

    def list_candidates(
        self,
        db: Session,
        keyword: Optional[str] = None,
        education: Optional[str] = None,
        skill: Optional[str] = None,
        min_work_years: Optional[int] = None,
        max_work_years: Optional[int] = None,
        position: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[int, List[Candidate]]:
        query = db.query(Candidate)

        if keyword:
            pattern = f"%{keyword.strip()}%"
            query = query.filter(or_(
                Candidate.name.ilike(pattern),
                Candidate.email.ilike(pattern),
                Candidate.phone.ilike(pattern),
                Candidate.current_company.ilike(pattern),
            ))
        if education:
            query = query.filter(Candidate.education == education)
        if position:
            query = query.filter(Candidate.current_position.ilike(f"%{position.strip()}%"))
        if min_work_years is not None:
            query = query.filter(Candidate.work_years >= min_work_years)
        if max_work_years is not None:
            query = query.filter(Candidate.work_years <= max_work_years)

        if skill:
            # JSON arrays are not portably queryable; filter the page in Python
            needle = skill.strip().lower()
            rows = query.order_by(Candidate.created_at.desc(), Candidate.id.desc()).all()
            rows = [
                row for row in rows
                if any(needle == str(tag).strip().lower() for tag in (row.skills or []))
            ]
            start = (page - 1) * page_size
            return len(rows), rows[start:start + page_size]

        total = query.with_entities(func.count(Candidate.id)).scalar() or 0
        rows = (
            query.order_by(Candidate.created_at.desc(), Candidate.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return total, rows

    def update_manual(self, db: Session, candidate_id: int, data: CandidateUpdate) -> Candidate:
        """Apply a partial edit, then re-vectorize on a worker"""
        candidate = self.get_by_id(db, candidate_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "gender" in changes:
            changes["gender"] = normalize_gender(changes["gender"]).value
        for field in ("work_experience", "project_experience"):
            if field in changes:
                changes[field] = _as_history(changes[field])
        for field, value in changes.items():
            setattr(candidate, field, value)

        db.commit()
        db.refresh(candidate)
        delete_cache(_cache_key(candidate_id))
        logger.info("candidate_updated", candidate_id=candidate_id, fields=sorted(changes))

        if changes:
            self.publisher.dispatch_vectorize(candidate_id)
        return candidate

    def delete(self, db: Session, candidate_id: int) -> None:
        """Remove the row, its vector and its cache entry"""
        candidate = self.get_by_id(db, candidate_id)
        db.delete(candidate)
        db.commit()
        delete_cache(_cache_key(candidate_id))

        # Reconciliation removes the vector if this fails
        self.vector_service.delete_vector(candidate_id)
        logger.info("candidate_deleted", candidate_id=candidate_id)


# Global instance
candidate_service = CandidateService()
