"""
Job application routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import structlog

from app.core.database import get_db
from app.auth.dependencies import CurrentUser, get_current_active_user
from app.matching.schemas import ApplicationCreate, ApplicationResponse, MatchScoreResponse, ScoreBreakdown
from app.matching.service import application_service, match_score_service

router = APIRouter(prefix="/api/v1/applications", tags=["Applications"])
logger = structlog.get_logger()


@router.post("/", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_application(
    data: ApplicationCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Create an application; its match score is computed in the background"""
    application = application_service.create(db, data.job_id, data.candidate_id)
    return ApplicationResponse.model_validate(application)


@router.get("/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get application with its latest match score"""
    return ApplicationResponse.model_validate(application_service.get(db, application_id))


@router.post("/{application_id}/match-score", response_model=MatchScoreResponse)
def recalculate_match_score(
    application_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Recompute the match score synchronously"""
    application = match_score_service.calculate_and_save(db, application_id)
    return MatchScoreResponse(
        application_id=application.id,
        job_id=application.job_id,
        candidate_id=application.candidate_id,
        total_score=float(application.match_score),
        breakdown=ScoreBreakdown.model_validate(application.match_breakdown),
        reasons=application.match_reasons or [],
        calculated_at=application.match_calculated_at,
    )
