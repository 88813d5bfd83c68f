"""
Candidate routes
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
import structlog

from app.core.database import get_db
from app.auth.dependencies import CurrentUser, get_current_active_user
from app.candidates.schemas import (
    CandidateListResponse,
    CandidateResponse,
    CandidateUpdate,
    SmartSearchRequest,
    SmartSearchResponse,
)
from app.candidates.search_service import smart_search_service
from app.candidates.service import candidate_service

router = APIRouter(prefix="/api/v1/candidates", tags=["Candidates"])
logger = structlog.get_logger()


@router.get("/", response_model=CandidateListResponse)
def list_candidates(
    keyword: Optional[str] = None,
    education: Optional[str] = None,
    skill: Optional[str] = None,
    min_work_years: Optional[int] = Query(None, ge=0, alias="minWorkYears"),
    max_work_years: Optional[int] = Query(None, ge=0, alias="maxWorkYears"),
    position: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """List candidates with filters"""
    total, candidates = candidate_service.list_candidates(
        db,
        keyword=keyword,
        education=education,
        skill=skill,
        min_work_years=min_work_years,
        max_work_years=max_work_years,
        position=position,
        page=page,
        page_size=page_size,
    )
    return CandidateListResponse(
        total=total,
        page=page,
        page_size=page_size,
        items=[CandidateResponse.model_validate(c).masked() for c in candidates],
    )


@router.post("/smart-search", response_model=SmartSearchResponse)
def smart_search(
    request: SmartSearchRequest,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Semantic search over candidate profiles"""
    return smart_search_service.search(db, request)


@router.get("/{candidate_id}", response_model=CandidateResponse)
def get_candidate(
    candidate_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get candidate details"""
    return CandidateResponse.model_validate(candidate_service.get_detail(db, candidate_id)).masked()


@router.put("/{candidate_id}", response_model=CandidateResponse)
def update_candidate(
    candidate_id: int,
    candidate_data: CandidateUpdate,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Correct extracted fields; the vector is refreshed in the background"""
    candidate = candidate_service.update_manual(db, candidate_id, candidate_data)
    return CandidateResponse.model_validate(candidate).masked()


@router.delete("/{candidate_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_candidate(
    candidate_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Delete candidate and its vector"""
    candidate_service.delete(db, candidate_id)
