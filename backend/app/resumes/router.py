"""
Resume ingestion routes
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, UploadFile, File, Query, status
from sqlalchemy.orm import Session
import structlog

from app.core.database import get_db
from app.auth.dependencies import CurrentUser, get_current_active_user
from app.models.resume import Resume
from app.resumes.schemas import (
    BatchUploadResponse,
    ResumeListResponse,
    ResumeResponse,
    TaskStatusResponse,
    UploadResponse,
)
from app.resumes.service import resume_service
from app.resumes.task_status import get_task_status

router = APIRouter(prefix="/api/v1/resumes", tags=["Resumes"])
logger = structlog.get_logger()


def _to_response(resume: Resume) -> ResumeResponse:
    response = ResumeResponse.model_validate(resume)
    response.candidate_id = resume.candidate.id if resume.candidate else None
    return response


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_202_ACCEPTED)
def upload_resume(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Upload a resume; identical files resolve to the existing resume"""
    content = file.file.read()
    result = resume_service.upload_resume(db, content, file.filename, file.content_type, current_user.id)
    return UploadResponse.model_validate(result)


@router.post("/batch-upload", response_model=BatchUploadResponse, status_code=status.HTTP_202_ACCEPTED)
def batch_upload_resumes(
    files: List[UploadFile] = File(...),
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Upload several resumes; each file succeeds or fails on its own"""
    payload = [(f.file.read(), f.filename, f.content_type) for f in files]
    return BatchUploadResponse.model_validate(resume_service.batch_upload(db, payload, current_user.id))


@router.get("/tasks/{task_id}", response_model=TaskStatusResponse)
def get_parse_task_status(
    task_id: str,
    current_user: CurrentUser = Depends(get_current_active_user),
):
    """Poll the progress of a parse task"""
    return TaskStatusResponse.model_validate(get_task_status(task_id))


@router.get("/", response_model=ResumeListResponse)
def list_resumes(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    resume_status: Optional[str] = Query(None, alias="status"),
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """List the caller's resumes"""
    total, resumes = resume_service.list_resumes(db, current_user.id, resume_status, page, page_size)
    return ResumeListResponse(
        total=total,
        page=page,
        page_size=page_size,
        items=[_to_response(r) for r in resumes],
    )


@router.get("/{resume_id}", response_model=ResumeResponse)
def get_resume(
    resume_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get resume details"""
    return _to_response(resume_service.get_resume(db, resume_id, current_user))


@router.post("/{resume_id}/reprocess", response_model=UploadResponse, status_code=status.HTTP_202_ACCEPTED)
def reprocess_resume(
    resume_id: int,
    current_user: CurrentUser = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Queue a resume for parsing again"""
    return UploadResponse.model_validate(resume_service.reprocess(db, resume_id, current_user))
