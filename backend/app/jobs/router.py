"""
Job routes
"""
from typing import List
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
import structlog

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.auth.dependencies import CurrentUser, get_current_active_user
from app.models.job import Job
from app.jobs.schemas import JobCreate, JobResponse

router = APIRouter(prefix="/api/v1/jobs", tags=["Jobs"])
logger = structlog.get_logger()


@router.post("/", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def create_job(
    job_data: JobCreate,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Create a new job"""
    job = Job(**job_data.model_dump(), created_by=current_user.id)
    db.add(job)
    db.commit()
    db.refresh(job)

    logger.info("job_created", job_id=job.id, title=job.title)
    return JobResponse.model_validate(job)


@router.get("/", response_model=List[JobResponse])
def list_jobs(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """List jobs"""
    jobs = db.query(Job).order_by(Job.created_at.desc(), Job.id.desc()).offset(skip).limit(limit).all()
    return [JobResponse.model_validate(job) for job in jobs]


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get job details"""
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFoundError("Job", str(job_id))
    return JobResponse.model_validate(job)
