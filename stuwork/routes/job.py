from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from stuwork.dependencies import get_job_service
from stuwork.schemas.job import (
    ApplicationStatusResponse,
    ApplicationStatusUpdate,
    ApplyResponse,
    EmployerJobResponse,
    JobCreate,
    JobMutationResponse,
    JobResponse,
    JobUpdate,
    StudentApplicationResponse,
)
from stuwork.schemas.auth import MessageResponse
from stuwork.services.job_service import JobService
from stuwork.utils.auth import get_current_user

router = APIRouter(prefix="/jobs", tags=["Jobs"])

# ===========================
# PUBLIC ENDPOINTS
# ===========================

# ✅ 1. GET ALL ACTIVE JOBS (Public)
@router.get("", response_model=List[JobResponse])
async def get_all_jobs(
    search: Optional[str] = Query(None, description="Search in title or description"),
    location: Optional[str] = Query(None, description="Filter by location"),
    job_type: Optional[str] = Query(None, description="full-time, part-time, internship, contract"),
    skills: Optional[str] = Query(None, description="Filter by skills (comma-separated)"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of results"),
    jobs: JobService = Depends(get_job_service),
):
    """Get active jobs, newest first."""
    return await jobs.list_jobs(search=search, location=location, job_type=job_type, skills=skills, limit=limit)


# ===========================
# EMPLOYER ENDPOINTS
# ===========================

# ✅ 2. MY POSTED JOBS (Employer)
@router.get("/employer/my-jobs", response_model=List[EmployerJobResponse])
async def get_my_jobs(
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    """All jobs posted by the caller, with applicant profiles."""
    return await jobs.list_employer_jobs(current_user)


# ===========================
# STUDENT ENDPOINTS
# ===========================

# ✅ 3. MY APPLICATIONS (Student)
@router.get("/student/my-applications", response_model=List[StudentApplicationResponse])
async def get_my_applications(
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    """Jobs the caller applied to, each with the caller's own status only."""
    return await jobs.list_student_applications(current_user)


# ✅ 4. GET SINGLE JOB (Public)
@router.get("/{job_id}", response_model=JobResponse)
async def get_job_details(job_id: str, jobs: JobService = Depends(get_job_service)):
    return await jobs.get_job(job_id)


# ✅ 5. POST A JOB (Employer/Admin)
@router.post("", response_model=JobMutationResponse, status_code=201)
async def create_job(
    job: JobCreate,
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    created = await jobs.create_job(current_user, job.model_dump())
    return {"message": "Job created successfully", "job": created}


# ✅ 6. UPDATE JOB (Owner)
@router.put("/{job_id}", response_model=JobMutationResponse)
async def update_job(
    job_id: str,
    job_update: JobUpdate,
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    updated = await jobs.update_job(current_user, job_id, job_update.model_dump(exclude_unset=True))
    return {"message": "Job updated successfully", "job": updated}


# ✅ 7. MARK JOB COMPLETED (Owner)
@router.put("/{job_id}/complete", response_model=MessageResponse)
async def complete_job(
    job_id: str,
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    await jobs.complete_job(current_user, job_id)
    return {"message": "Job marked as completed"}


# ✅ 8. APPLY FOR JOB (Student)
@router.post("/{job_id}/apply", response_model=ApplyResponse)
async def apply_job(
    job_id: str,
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    application = await jobs.apply_to_job(current_user, job_id)
    return {"message": "Application submitted successfully", "application": application}


# ✅ 9. UPDATE APPLICATION STATUS (Owner)
@router.put("/{job_id}/application/{application_id}/status", response_model=ApplicationStatusResponse)
async def update_application_status(
    job_id: str,
    application_id: str,
    status_update: ApplicationStatusUpdate,
    current_user: dict = Depends(get_current_user),
    jobs: JobService = Depends(get_job_service),
):
    """Accepting one applicant closes the job and rejects the other pending ones."""
    result = await jobs.set_application_status(current_user, job_id, application_id, status_update.status)
    return {"message": "Application status updated successfully", **result}
