"""
Application ranking pipeline: validate -> extract -> score -> persist -> notify
"""
import asyncio
import uuid
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, TypedDict

import pandas as pd
from langgraph.graph import StateGraph, END
from pymongo.errors import DuplicateKeyError

from jobconnect.helpers import emails
from jobconnect.helpers.parsing import extract_resume_text
from jobconnect.models.forms import ApplicationForm
from jobconnect.models.models import CurrentUser, ExtractedText, ResumeUpload, ScoreResult, UserRole
from jobconnect.models.schemas import ApplicationModel, ApplicationStatus, ResumeDocument
from jobconnect.services.ats import LLMScorer
from jobconnect.services.notifications import Notifier
from jobconnect.services.storage import ResumeStore, resume_object_name
from jobconnect.utils.config import Settings
from jobconnect.utils.exceptions import (
    AuthorizationError, DatabaseError, DuplicateApplication, NotFoundError, ValidationError
)
from jobconnect.utils.logging_config import get_logger

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
EXPORT_COLUMNS = ["rank", "application_id", "name", "email", "ats_score", "status", "applied_at"]


class PipelineState(TypedDict, total=False):
    mode: str  # "submit" or "check"
    user: CurrentUser
    job_id: Optional[str]
    fields: Mapping[str, Any]
    form: ApplicationForm
    upload: Optional[ResumeUpload]
    job: Dict[str, Any]
    extracted: ExtractedText
    result: ScoreResult
    ats_score: int
    application: ApplicationModel
    notified: bool


def clamp_score(value: Any) -> int:
    try:
        return max(0, min(100, int(value)))
    except (TypeError, ValueError):
        return 0


class ApplicationService:
    """Runs application submissions and ATS checks, and serves stored scores.

    Submissions and checks share the validate, extract and score steps, so a
    pre-application check reports the score a submission would store.
    """

    def __init__(
        self,
        jobs,
        applications,
        scorer: LLMScorer,
        store: ResumeStore,
        notifier: Notifier,
        settings: Settings,
    ):
        self.jobs = jobs
        self.applications = applications
        self.scorer = scorer
        self.store = store
        self.notifier = notifier
        self.settings = settings
        self._submit_graph = self._build_graph(persist=True)
        self._check_graph = self._build_graph(persist=False)

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def _build_graph(self, persist: bool):
        g = StateGraph(PipelineState)
        g.add_node("validate", self.node_validate)
        g.add_node("extract", self.node_extract)
        g.add_node("score", self.node_score)
        g.set_entry_point("validate")
        g.add_edge("validate", "extract")
        g.add_edge("extract", "score")
        if persist:
            g.add_node("persist", self.node_persist)
            g.add_node("notify", self.node_notify)
            g.add_edge("score", "persist")
            g.add_edge("persist", "notify")
            g.add_edge("notify", END)
        else:
            g.add_edge("score", END)
        return g.compile()

    def _check_upload(self, upload: Optional[ResumeUpload]) -> None:
        if upload is None:
            raise ValidationError("Resume file required!", field="resume")
        if upload.content_type != PDF_CONTENT_TYPE:
            raise ValidationError("Only PDF files are allowed!", field="resume", value=upload.content_type)
        if upload.size > self.settings.resume_max_bytes:
            limit_mb = self.settings.resume_max_bytes // (1024 * 1024)
            raise ValidationError(f"File size should be less than {limit_mb}MB!", field="resume", value=upload.size)

    async def node_validate(self, state: PipelineState) -> Dict[str, Any]:
        user = state["user"]
        if user.role != UserRole.JOB_SEEKER:
            raise ValidationError("Employer not allowed to access this resource.", field="role", value=user.role.value)

        self._check_upload(state.get("upload"))

        job_id = state.get("job_id")
        out: Dict[str, Any] = {}
        if state["mode"] == "submit":
            form = ApplicationForm.from_form(state.get("fields") or {})
            out["form"] = form
            job_id = form.job_id
            existing = await self.applications.find_one({"applicant_user_id": user.user_id, "job_id": job_id})
            if existing:
                raise DuplicateApplication(applicant_id=user.user_id, job_id=job_id)
        elif not job_id:
            raise ValidationError("Job ID is required.", field="jobId")

        job = await self.jobs.find_one({"job_id": job_id})
        if not job or job.get("expired"):
            raise NotFoundError("Job not found!", resource="job", resource_id=job_id)

        out.update(job=job, job_id=job_id)
        return out

    async def node_extract(self, state: PipelineState) -> Dict[str, Any]:
        upload = state["upload"]
        extracted = await asyncio.to_thread(
            extract_resume_text, upload.data, self.settings.resume_text_max_chars, upload.filename
        )
        return {"extracted": extracted}

    async def node_score(self, state: PipelineState) -> Dict[str, Any]:
        extracted = state["extracted"]
        if not extracted.readable:
            result = ScoreResult(
                score=self.settings.min_ats_score,
                skills_analysis="No readable text found in PDF",
                missing_skills=list(state["job"].get("required_skills", [])),
                source="minimum",
            )
        else:
            result = await self.scorer.score(extracted.text, list(state["job"].get("required_skills", [])))

        ats_score = clamp_score(result.score)
        logger.info(
            f"ATS score {ats_score} ({result.source}) for job {state['job_id']}",
            extra={"job_id": state["job_id"], "score_source": result.source}
        )
        return {"result": result, "ats_score": ats_score}

    async def node_persist(self, state: PipelineState) -> Dict[str, Any]:
        user, form, upload, job = state["user"], state["form"], state["upload"], state["job"]

        stored_name = resume_object_name(user.name or form.name, self.settings.storage_prefix)
        url = await self.store.upload(stored_name, upload.data, upload.content_type)

        application = ApplicationModel(
            application_id=str(uuid.uuid4()),
            applicant_user_id=user.user_id,
            employer_user_id=job["posted_by"],
            job_id=job["job_id"],
            name=form.name,
            email=form.email,
            cover_letter=form.cover_letter,
            phone=form.phone,
            address=form.address,
            resume=ResumeDocument(url=url, stored_name=stored_name),
            ats_score=state["ats_score"],
            status=ApplicationStatus.PENDING,
            applied_at=datetime.utcnow(),
        )

        try:
            await self.applications.insert_one(application.model_dump())
        except DuplicateKeyError as e:
            # lost the race against a concurrent submission
            await self.store.delete(stored_name)
            raise DuplicateApplication(applicant_id=user.user_id, job_id=job["job_id"], cause=e) from e
        except Exception as e:
            await self.store.delete(stored_name)
            raise DatabaseError("Failed to save application", operation="insert", collection="applications", cause=e) from e

        logger.info(f"Application {application.application_id} stored for job {job['job_id']}")
        return {"application": application}

    async def node_notify(self, state: PipelineState) -> Dict[str, Any]:
        form, job = state["form"], state["job"]
        try:
            self.notifier.notify(
                form.email,
                f"Confirmation of Your Application for {job['title']}",
                emails.application_confirmation(form.name, job["title"], job["company_name"], self.settings.frontend_url),
            )
        except Exception as e:
            logger.warning(f"Could not schedule confirmation email: {e}")
            return {"notified": False}
        return {"notified": True}

    # ------------------------------------------------------------------
    # Pipeline entry points
    # ------------------------------------------------------------------

    async def submit(self, user: CurrentUser, fields: Mapping[str, Any], upload: Optional[ResumeUpload]) -> ApplicationModel:
        """Validate, score and store one application.

        ``fields`` are the raw form values keyed by their wire names
        (``coverLetter``, ``jobId``).
        """
        state = await self._submit_graph.ainvoke({
            "mode": "submit",
            "user": user,
            "fields": dict(fields or {}),
            "upload": upload,
            "job_id": (fields or {}).get("jobId"),
        })
        return state["application"]

    async def check_score_only(self, user: CurrentUser, job_id: Optional[str], upload: Optional[ResumeUpload]) -> int:
        state = await self._check_graph.ainvoke({
            "mode": "check",
            "user": user,
            "job_id": job_id,
            "upload": upload,
        })
        return state["ats_score"]

    # ------------------------------------------------------------------
    # Stored applications
    # ------------------------------------------------------------------

    async def _owned_job(self, user: CurrentUser, job_id: str) -> Dict[str, Any]:
        if user.role != UserRole.EMPLOYER:
            raise ValidationError("Job Seekers cannot access this resource.", field="role", value=user.role.value)
        job = await self.jobs.find_one({"job_id": job_id})
        if not job:
            raise NotFoundError("Job not found!", resource="job", resource_id=job_id)
        if job["posted_by"] != user.user_id:
            raise AuthorizationError("You are not authorized to view applications for this job.", resource=job_id)
        return job

    async def _find_application(self, application_id: str) -> Dict[str, Any]:
        doc = await self.applications.find_one({"application_id": application_id})
        if not doc:
            raise NotFoundError("Application not found!", resource="application", resource_id=application_id)
        return doc

    async def list_for_applicant(self, user: CurrentUser) -> List[ApplicationModel]:
        if user.role != UserRole.JOB_SEEKER:
            raise ValidationError("Employers cannot view applications this way.", field="role", value=user.role.value)

        docs = await self.applications.find({"applicant_user_id": user.user_id}).sort("applied_at", -1).to_list(length=None)
        job_ids = list({d["job_id"] for d in docs})
        jobs = await self.jobs.find({"job_id": {"$in": job_ids}}).to_list(length=None) if job_ids else []
        by_id = {j["job_id"]: j for j in jobs}

        out = []
        for doc in docs:
            job = by_id.get(doc["job_id"], {})
            out.append(ApplicationModel(**{**doc, "job_title": job.get("title"), "company_name": job.get("company_name")}))
        return out

    async def list_for_job(self, user: CurrentUser, job_id: str) -> List[ApplicationModel]:
        await self._owned_job(user, job_id)
        docs = await self.applications.find({"job_id": job_id}).sort("ats_score", -1).to_list(length=None)
        return [ApplicationModel(**doc) for doc in docs]

    async def ranked_for_job(self, user: CurrentUser, job_id: str) -> List[ApplicationModel]:
        """Persisted scores, highest first; earlier applications win ties"""
        applications = await self.list_for_job(user, job_id)
        return sorted(applications, key=lambda a: (-a.ats_score, a.applied_at))

    async def score_chart(self, user: CurrentUser, job_id: str) -> List[Dict[str, Any]]:
        return [
            {"application_id": a.application_id, "applicant_name": a.name, "ats_score": a.ats_score}
            for a in await self.ranked_for_job(user, job_id)
        ]

    async def export_csv(self, user: CurrentUser, job_id: str) -> str:
        ranked = await self.ranked_for_job(user, job_id)
        df = pd.DataFrame(
            [{
                "rank": i,
                "application_id": a.application_id,
                "name": a.name,
                "email": a.email,
                "ats_score": a.ats_score,
                "status": a.status,
                "applied_at": a.applied_at.isoformat(),
            } for i, a in enumerate(ranked, start=1)],
            columns=EXPORT_COLUMNS,
        )
        return df.to_csv(index=False)

    async def get(self, user: CurrentUser, application_id: str) -> ApplicationModel:
        doc = await self._find_application(application_id)
        if user.user_id not in (doc["applicant_user_id"], doc["employer_user_id"]):
            raise AuthorizationError("You are not authorized to view this application.", resource=application_id)
        return ApplicationModel(**doc)

    async def update_status(self, user: CurrentUser, application_id: str, status: ApplicationStatus) -> ApplicationModel:
        doc = await self._find_application(application_id)
        if user.role != UserRole.EMPLOYER:
            raise ValidationError("Job Seekers cannot update application status.", field="role", value=user.role.value)
        if doc["employer_user_id"] != user.user_id:
            raise AuthorizationError("You are not authorized to update this application.", resource=application_id)

        status_value = ApplicationStatus(status).value
        await self.applications.update_one({"application_id": application_id}, {"$set": {"status": status_value}})
        logger.info(f"Application {application_id} status set to {status_value}")
        return ApplicationModel(**{**doc, "status": status_value})

    async def delete(self, user: CurrentUser, application_id: str) -> None:
        doc = await self._find_application(application_id)
        owner = doc["applicant_user_id"] if user.role == UserRole.JOB_SEEKER else doc["employer_user_id"]
        if owner != user.user_id:
            raise AuthorizationError("You are not authorized to delete this application.", resource=application_id)

        await self.applications.delete_one({"application_id": application_id})
        await self.jobs.update_one(
            {"job_id": doc["job_id"]},
            {"$pull": {"shortlist": {"application_id": application_id}}}
        )
        logger.info(f"Application {application_id} deleted by {user.user_id}")
