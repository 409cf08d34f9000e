from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import Response

from jobconnect.models.forms import StatusUpdate
from jobconnect.models.models import CurrentUser, ResumeUpload
from jobconnect.models.response import (
    ApplicationListResponse, ApplicationResponse, AtsScoreResponse, MessageResponse, ScoreChartResponse
)
from jobconnect.services.applications import ApplicationService
from jobconnect.services.providers import get_application_service
from jobconnect.services.session_store import get_current_user
from jobconnect.utils.logging_config import get_logger, PerformanceMonitor

router = APIRouter()
logger = get_logger(__name__)


async def read_upload(resume: Optional[UploadFile], max_bytes: int) -> Optional[ResumeUpload]:
    """Read at most one byte past the limit; the size check rejects anything longer"""
    if resume is None:
        return None
    data = await resume.read(max_bytes + 1)
    return ResumeUpload(
        filename=resume.filename or "resume.pdf",
        content_type=resume.content_type or "",
        data=data,
    )


@router.post("/", response_model=ApplicationResponse)
async def submit_application(
    request: Request,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    cover_letter: Optional[str] = Form(None, alias="coverLetter"),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    job_id: Optional[str] = Form(None, alias="jobId"),
    resume: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    """Submit an application; the resume is scored once and the score stored"""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.info(
        f"Application submission by {user.user_id} for job {job_id}",
        extra={"request_id": request_id, "user_id": user.user_id, "job_id": job_id}
    )

    upload = await read_upload(resume, service.settings.resume_max_bytes)
    fields = {
        "name": name,
        "email": email,
        "coverLetter": cover_letter,
        "phone": phone,
        "address": address,
        "jobId": job_id,
    }

    with PerformanceMonitor("submit_application", logger, threshold_ms=5000):
        application = await service.submit(user, fields, upload)

    return ApplicationResponse(message="Application Submitted!", application=application)


@router.post("/check-ats", response_model=AtsScoreResponse)
async def check_ats_score(
    job_id: Optional[str] = Form(None, alias="jobId"),
    resume: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    """Score a resume against a job without storing anything"""
    upload = await read_upload(resume, service.settings.resume_max_bytes)
    with PerformanceMonitor("check_ats_score", logger, threshold_ms=5000):
        score = await service.check_score_only(user, job_id, upload)
    return AtsScoreResponse(ats_score=score)


@router.get("/me", response_model=ApplicationListResponse)
async def my_applications(
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    return ApplicationListResponse(applications=await service.list_for_applicant(user))


@router.get("/job/{job_id}", response_model=ApplicationListResponse)
async def job_applications(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    """Applications for one of the caller's jobs, highest score first"""
    return ApplicationListResponse(applications=await service.list_for_job(user, job_id))


@router.get("/job/{job_id}/chart", response_model=ScoreChartResponse)
async def job_score_chart(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    return ScoreChartResponse(job_id=job_id, points=await service.score_chart(user, job_id))


@router.get("/job/{job_id}/export")
async def export_job_applications(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    csv_text = await service.export_csv(user, job_id)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="applications_{job_id}.csv"'},
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.get(user, application_id)
    return ApplicationResponse(message="Application found.", application=application)


@router.patch("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: str,
    body: StatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    application = await service.update_status(user, application_id, body.status)
    return ApplicationResponse(message="Application status updated.", application=application)


@router.delete("/{application_id}", response_model=MessageResponse)
async def delete_application(
    application_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service),
):
    await service.delete(user, application_id)
    return MessageResponse(message="Application Deleted!")
