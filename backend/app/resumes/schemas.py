"""
Resume Pydantic schemas
"""
from typing import Optional, List
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ResumeParseMessage(CamelModel):
    """Queue payload of one ingestion task; retry_count travels with the message"""
    task_id: str
    resume_id: int
    owner_id: int
    content_hash: str
    retry_count: int = Field(0, ge=0)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)

    def next_attempt(self) -> "ResumeParseMessage":
        return self.model_copy(update={"retry_count": self.retry_count + 1})


class UploadResponse(CamelModel):
    """Dedup gate answer; task_id is None for duplicates"""
    task_id: Optional[str] = None
    resume_id: int
    duplicated: bool


class BatchUploadItem(CamelModel):
    file_name: str
    status: str  # QUEUED, DUPLICATE or FAILED
    task_id: Optional[str] = None
    resume_id: Optional[int] = None
    error_message: Optional[str] = None


class BatchUploadResponse(CamelModel):
    total: int
    queued: int
    duplicated: int
    failed: int
    items: List[BatchUploadItem]


class TaskStatusResponse(CamelModel):
    task_id: str
    status: str
    resume_id: Optional[int] = None
    candidate_id: Optional[int] = None
    error_message: Optional[str] = None
    progress: int = 0
    retry_count: Optional[int] = None
    max_retries: Optional[int] = None
    updated_at: Optional[datetime] = None


class ResumeResponse(CamelModel):
    """Resume response schema"""
    id: int
    owner_id: int
    file_name: str
    file_size: Optional[int] = None
    declared_type: Optional[str] = None
    sniffed_type: Optional[str] = None
    file_hash: str
    status: str
    error_message: Optional[str] = None
    candidate_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ResumeListResponse(CamelModel):
    total: int
    page: int
    page_size: int
    items: List[ResumeResponse]
