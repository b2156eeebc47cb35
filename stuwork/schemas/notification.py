from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class RelatedJob(BaseModel):
    id: str
    title: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    message: str
    type: str
    related_job_id: Optional[str] = None
    related_job: Optional[RelatedJob] = None
    read: bool = False
    created_at: Optional[datetime] = None


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int
