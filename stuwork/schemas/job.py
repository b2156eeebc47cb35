from pydantic import BaseModel, field_validator
from typing import List, Optional, Literal
from datetime import datetime

JobType = Literal["full-time", "part-time", "internship", "contract"]


# 1. Input: What the Employer sends
class JobCreate(BaseModel):
    title: str
    description: str
    location: str
    salary: Optional[str] = None
    job_type: JobType = "full-time"
    requirements: List[str] = []
    skills: List[str] = []
    benefits: Optional[str] = None

    @field_validator('title', 'description', 'location')
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field is required')
        return v


# 2. Input: Update existing job
class JobUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[JobType] = None
    requirements: Optional[List[str]] = None
    skills: Optional[List[str]] = None
    benefits: Optional[str] = None

    # Omitted fields stay as they are; sent ones may not clear required data.
    @field_validator('title', 'description', 'location')
    @classmethod
    def not_blank(cls, v):
        if v is None or not v.strip():
            raise ValueError('Field cannot be empty')
        return v

    @field_validator('job_type', 'requirements', 'skills')
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError('Field cannot be null')
        return v


# 3. Input: Application status change
class ApplicationStatusUpdate(BaseModel):
    status: Literal["pending", "accepted", "rejected"]


# 4. Output: People attached to a job
class EmployerSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ApplicantProfile(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class ApplicantResponse(BaseModel):
    id: str
    user_id: str
    applied_at: Optional[datetime] = None
    status: str
    user: Optional[ApplicantProfile] = None


# 5. Output: Job views
class JobResponse(BaseModel):
    id: str
    title: str
    description: str
    location: str
    salary: Optional[str] = None
    job_type: str
    requirements: List[str] = []
    skills: List[str] = []
    benefits: Optional[str] = None
    employer_id: str
    employer: Optional[EmployerSummary] = None
    applicant_count: int = 0
    is_active: bool = True
    completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EmployerJobResponse(JobResponse):
    applicants: List[ApplicantResponse] = []


class StudentApplicationResponse(JobResponse):
    application_id: str
    application_status: str
    applied_at: Optional[datetime] = None


class JobMutationResponse(BaseModel):
    message: str
    job: JobResponse


class ApplyResponse(BaseModel):
    message: str
    application: ApplicantResponse


class ApplicationStatusResponse(BaseModel):
    message: str
    application: ApplicantResponse
    is_active: bool
    auto_rejected: int = 0
