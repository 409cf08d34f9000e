import uuid
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from jobconnect.helpers import emails
from jobconnect.models.forms import JobCreate, JobUpdate, ShortlistRequest, check_salary
from jobconnect.models.models import CurrentUser, UserRole
from jobconnect.models.response import JobListResponse, JobResponse, MessageResponse
from jobconnect.models.schemas import JobModel
from jobconnect.services.db import jobs_coll
from jobconnect.services.notifications import Notifier
from jobconnect.services.providers import get_notifier
from jobconnect.services.session_store import get_current_user
from jobconnect.utils.config import get_settings
from jobconnect.utils.exceptions import (
    AuthorizationError, ExceptionContext, NotFoundError, ValidationError
)
from jobconnect.utils.logging_config import get_logger, PerformanceMonitor

router = APIRouter()
logger = get_logger(__name__)


def require_employer(user: CurrentUser) -> None:
    if user.role != UserRole.EMPLOYER:
        raise ValidationError("Job Seeker not allowed to access this resource.", field="role", value=user.role.value)


async def find_owned_job(job_id: str, user: CurrentUser) -> Dict[str, Any]:
    with ExceptionContext("find_job", logger, job_id=job_id):
        job = await jobs_coll.find_one({"job_id": job_id})
    if not job:
        raise NotFoundError("OOPS! Job not found.", resource="job", resource_id=job_id)
    if job["posted_by"] != user.user_id:
        raise AuthorizationError("You are not the owner of this job.", resource=job_id)
    return job


@router.get("/", response_model=JobListResponse)
async def list_jobs(request: Request):
    """All jobs that are still open"""
    request_id = getattr(request.state, 'request_id', 'unknown')

    with PerformanceMonitor("list_jobs", logger):
        with ExceptionContext("fetch_jobs", logger, request_id=request_id):
            cursor = jobs_coll.find({"expired": False}).sort("posted_on", -1)
            jobs = await cursor.to_list(length=None)

    logger.info(f"Fetched {len(jobs)} open jobs", extra={"request_id": request_id, "job_count": len(jobs)})
    return JobListResponse(jobs=[JobModel(**job) for job in jobs])


@router.post("/", response_model=JobResponse)
async def post_job(
    payload: JobCreate,
    user: CurrentUser = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    require_employer(user)

    job = JobModel(
        job_id=str(uuid.uuid4()),
        posted_by=user.user_id,
        posted_on=datetime.utcnow(),
        **payload.model_dump(),
    )
    with ExceptionContext("insert_job", logger, job_id=job.job_id):
        await jobs_coll.insert_one(job.model_dump())
    logger.info(f"Job {job.job_id} posted by {user.user_id}")

    if user.email:
        try:
            notifier.notify(
                user.email,
                f"Your Job Post for {job.title} is Live!",
                emails.job_posted(user.name, job.title, job.company_name, get_settings().frontend_url),
            )
        except Exception as e:
            logger.warning(f"Could not schedule job posted email: {e}")

    return JobResponse(message="Job Posted Successfully!", job=job)


@router.get("/me", response_model=JobListResponse)
async def my_jobs(user: CurrentUser = Depends(get_current_user)):
    require_employer(user)
    with ExceptionContext("fetch_my_jobs", logger, user_id=user.user_id):
        jobs = await jobs_coll.find({"posted_by": user.user_id}).sort("posted_on", -1).to_list(length=None)
    return JobListResponse(jobs=[JobModel(**job) for job in jobs])


@router.post("/shortlist", response_model=MessageResponse)
async def toggle_shortlist(body: ShortlistRequest, user: CurrentUser = Depends(get_current_user)):
    """Add the applicant to the job's shortlist, or remove them if already there"""
    require_employer(user)
    job = await find_owned_job(body.job_id, user)

    entry = {"applicant_user_id": body.applicant_user_id, "application_id": body.application_id}
    listed = any(e.get("application_id") == body.application_id for e in job.get("shortlist", []))

    with ExceptionContext("toggle_shortlist", logger, job_id=body.job_id):
        if listed:
            await jobs_coll.update_one({"job_id": body.job_id}, {"$pull": {"shortlist": {"application_id": body.application_id}}})
        else:
            await jobs_coll.update_one({"job_id": body.job_id}, {"$push": {"shortlist": entry}})

    return MessageResponse(message="Applicant removed from shortlist." if listed else "Applicant Shortlisted!")


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str):
    with ExceptionContext("fetch_job", logger, job_id=job_id):
        job = await jobs_coll.find_one({"job_id": job_id})
    if not job:
        raise NotFoundError("Job not found.", resource="job", resource_id=job_id)
    return JobResponse(job=JobModel(**job))


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(job_id: str, payload: JobUpdate, user: CurrentUser = Depends(get_current_user)):
    require_employer(user)
    job = await find_owned_job(job_id, user)

    changes = payload.changes()
    merged = {**job, **changes}
    try:
        check_salary(merged.get("fixed_salary"), merged.get("salary_from"), merged.get("salary_to"))
    except ValueError as e:
        raise ValidationError(str(e), field="salary") from e
    try:
        updated = JobModel(**merged)
    except PydanticValidationError as e:
        raise ValidationError("Invalid job update.", value=e.errors(include_url=False)) from e

    if changes:
        with ExceptionContext("update_job", logger, job_id=job_id):
            await jobs_coll.update_one({"job_id": job_id}, {"$set": changes})
        logger.info(f"Job {job_id} updated: {sorted(changes)}")

    return JobResponse(message="Job Updated!", job=updated)


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, user: CurrentUser = Depends(get_current_user)):
    """Soft delete: the job is expired, its applications are kept"""
    require_employer(user)
    await find_owned_job(job_id, user)
    with ExceptionContext("expire_job", logger, job_id=job_id):
        await jobs_coll.update_one({"job_id": job_id}, {"$set": {"expired": True}})
    return MessageResponse(message="Job Deleted!")
