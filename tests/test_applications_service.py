import asyncio
import threading
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from jobconnect.models.models import ResumeUpload
from jobconnect.models.schemas import ApplicationModel, ResumeDocument
from jobconnect.services.applications import ApplicationService
from jobconnect.services.ats import LLMScorer
from jobconnect.services.notifications import Notifier
from jobconnect.utils.exceptions import (
    AuthorizationError, DuplicateApplication, InvalidDocument, ModelError,
    NotFoundError, StorageFailure, ValidationError
)
from tests.fakes import FakeCollection, RecordingStore

RESUME_TEXT = "Jane Doe. Frontend engineer: React, TypeScript, sql reporting."


@pytest.fixture
def env(settings, make_job):
    jobs = FakeCollection("jobs")
    applications = FakeCollection("applications")
    asyncio.run(applications.create_index([("applicant_user_id", 1), ("job_id", 1)], unique=True))

    job = make_job()
    jobs.docs.append(job)

    generate = MagicMock(return_value="Score: 74\nSkills Analysis: Good React.\nMissing Skills: Node.js")
    sender = MagicMock()
    store = RecordingStore()
    service = ApplicationService(
        jobs=jobs,
        applications=applications,
        scorer=LLMScorer(generate, timeout=1.0),
        store=store,
        notifier=Notifier(sender),
        settings=settings,
    )
    return SimpleNamespace(
        service=service, jobs=jobs, applications=applications, job=job,
        generate=generate, sender=sender, store=store,
    )


@pytest.fixture(autouse=True)
def resume_text():
    with patch('jobconnect.helpers.parsing.pdf_extract', return_value=RESUME_TEXT) as mock_extract:
        yield mock_extract


def submit(env, user, fields, upload, drain=True):
    async def scenario():
        application = await env.service.submit(user, fields, upload)
        if drain:
            await env.service.notifier.drain()
        return application
    return asyncio.run(scenario())


def stored_application(job, applicant_id, name, score, applied_at, status="Pending"):
    return ApplicationModel(
        application_id=f"app-{applicant_id}",
        applicant_user_id=applicant_id,
        employer_user_id=job["posted_by"],
        job_id=job["job_id"],
        name=name,
        email=f"{applicant_id}@example.com",
        cover_letter="Hello",
        phone="000",
        address="Somewhere",
        resume=ResumeDocument(url="https://files.test/r.pdf", stored_name="resume1/r.pdf"),
        ats_score=score,
        status=status,
        applied_at=applied_at,
    ).model_dump()


class TestSubmit:
    """Submission pipeline: validate, extract, score, persist, notify"""

    def test_successful_submission(self, env, seeker, pdf_upload, application_fields):
        application = submit(env, seeker, application_fields(env.job["job_id"]), pdf_upload)

        assert application.ats_score == 74
        assert application.status == "Pending"
        assert application.employer_user_id == "employer-1"
        assert application.resume.stored_name.startswith("resume1/Ada_Lovelace_")
        assert application.resume.url == f"https://files.test/{application.resume.stored_name}"
        assert env.applications.count() == 1
        env.sender.send.assert_called_once()
        assert env.sender.send.call_args[0][0] == "ada@example.com"

    def test_submit_returns_while_email_send_is_blocked(self, env, seeker, pdf_upload, application_fields):
        """A hung SMTP send holds neither the response nor the stored record"""
        started, released = threading.Event(), threading.Event()

        def blocking_send(*args):
            started.set()
            released.wait(5)

        env.sender.send.side_effect = blocking_send

        async def scenario():
            try:
                application = await env.service.submit(seeker, application_fields(env.job["job_id"]), pdf_upload)
                assert await asyncio.to_thread(started.wait, 5)
                assert not released.is_set()
                assert env.applications.count() == 1
                assert env.applications.docs[0]["application_id"] == application.application_id
            finally:
                released.set()
                await env.service.notifier.drain()
            return application

        application = asyncio.run(scenario())

        assert application.ats_score == 74
        env.sender.send.assert_called_once()

    def test_second_submission_is_duplicate(self, env, seeker, pdf_upload, application_fields):
        fields = application_fields(env.job["job_id"])
        submit(env, seeker, fields, pdf_upload)

        with pytest.raises(DuplicateApplication) as exc:
            submit(env, seeker, fields, pdf_upload)

        assert exc.value.message == "You have already applied for this job."
        assert env.applications.count({"applicant_user_id": seeker.user_id}) == 1

    def test_concurrent_duplicate_caught_by_unique_index(self, env, seeker, pdf_upload, application_fields):
        """Both requests pass the pre-check; the index rejects the second insert"""
        fields = application_fields(env.job["job_id"])
        submit(env, seeker, fields, pdf_upload)

        env.applications.find_one = AsyncMock(return_value=None)
        with pytest.raises(DuplicateApplication):
            submit(env, seeker, fields, pdf_upload)

        assert len(env.applications.docs) == 1
        assert len(env.store.deleted) == 1

    def test_bad_signature_rejected_before_scoring(self, env, seeker, application_fields):
        upload = ResumeUpload(filename="resume.pdf", content_type="application/pdf", data=b"GIF89a....")

        with pytest.raises(InvalidDocument):
            submit(env, seeker, application_fields(env.job["job_id"]), upload)

        assert env.generate.call_count == 0
        assert env.applications.count() == 0
        assert env.store.uploaded == {}

    def test_employer_cannot_apply(self, env, employer, pdf_upload, application_fields):
        with pytest.raises(ValidationError) as exc:
            submit(env, employer, application_fields(env.job["job_id"]), pdf_upload)
        assert exc.value.message == "Employer not allowed to access this resource."

    def test_missing_resume(self, env, seeker, application_fields):
        with pytest.raises(ValidationError) as exc:
            submit(env, seeker, application_fields(env.job["job_id"]), None)
        assert exc.value.message == "Resume file required!"

    def test_non_pdf_content_type(self, env, seeker, application_fields):
        upload = ResumeUpload(filename="resume.png", content_type="image/png", data=b"\x89PNG")
        with pytest.raises(ValidationError) as exc:
            submit(env, seeker, application_fields(env.job["job_id"]), upload)
        assert exc.value.message == "Only PDF files are allowed!"

    def test_oversized_resume(self, env, seeker, application_fields, settings):
        upload = ResumeUpload(
            filename="resume.pdf",
            content_type="application/pdf",
            data=b"%PDF" + b"0" * settings.resume_max_bytes,
        )
        with pytest.raises(ValidationError) as exc:
            submit(env, seeker, application_fields(env.job["job_id"]), upload)
        assert exc.value.message == "File size should be less than 5MB!"

    def test_missing_fields(self, env, seeker, pdf_upload, application_fields):
        with pytest.raises(ValidationError) as exc:
            submit(env, seeker, application_fields(env.job["job_id"], phone="  "), pdf_upload)
        assert exc.value.message == "Please fill all fields."
        assert exc.value.details["missing_fields"] == ["phone"]

    def test_expired_job_not_found(self, env, seeker, pdf_upload, application_fields, make_job):
        expired = make_job(expired=True)
        env.jobs.docs.append(expired)
        with pytest.raises(NotFoundError) as exc:
            submit(env, seeker, application_fields(expired["job_id"]), pdf_upload)
        assert exc.value.message == "Job not found!"

    def test_unreadable_pdf_scores_minimum_without_model(self, env, seeker, pdf_upload, application_fields, resume_text):
        resume_text.return_value = "   "
        application = submit(env, seeker, application_fields(env.job["job_id"]), pdf_upload)

        assert application.ats_score == 1
        assert env.generate.call_count == 0

    def test_model_failure_stores_heuristic_score(self, env, seeker, pdf_upload, application_fields):
        env.generate.side_effect = ModelError("connection refused")
        application = submit(env, seeker, application_fields(env.job["job_id"]), pdf_upload)
        assert application.ats_score == 67

    def test_notification_failure_does_not_fail_request(self, env, seeker, pdf_upload, application_fields):
        env.sender.send.side_effect = OSError("smtp down")
        application = submit(env, seeker, application_fields(env.job["job_id"]), pdf_upload)
        assert application.ats_score == 74
        assert env.applications.count() == 1

    def test_storage_failure_stores_nothing(self, env, seeker, pdf_upload, application_fields):
        env.service.store = RecordingStore(fail=True)
        with pytest.raises(StorageFailure):
            submit(env, seeker, application_fields(env.job["job_id"]), pdf_upload)
        assert env.applications.count() == 0


class TestCheckScoreOnly:
    """Pre-application scoring shares the submission path but stores nothing"""

    def test_returns_score_without_side_effects(self, env, seeker, pdf_upload):
        score = asyncio.run(env.service.check_score_only(seeker, env.job["job_id"], pdf_upload))
        assert score == 74
        assert env.applications.count() == 0
        assert env.store.uploaded == {}
        env.sender.send.assert_not_called()

    def test_heuristic_path_is_deterministic(self, env, seeker, pdf_upload):
        env.generate.side_effect = TimeoutError("model busy")
        first = asyncio.run(env.service.check_score_only(seeker, env.job["job_id"], pdf_upload))
        second = asyncio.run(env.service.check_score_only(seeker, env.job["job_id"], pdf_upload))
        assert first == second == 67

    def test_job_id_required(self, env, seeker, pdf_upload):
        with pytest.raises(ValidationError) as exc:
            asyncio.run(env.service.check_score_only(seeker, None, pdf_upload))
        assert exc.value.message == "Job ID is required."

    def test_unknown_job(self, env, seeker, pdf_upload):
        with pytest.raises(NotFoundError):
            asyncio.run(env.service.check_score_only(seeker, "missing", pdf_upload))

    def test_unreadable_pdf_gets_minimum(self, env, seeker, pdf_upload, resume_text):
        resume_text.return_value = ""
        assert asyncio.run(env.service.check_score_only(seeker, env.job["job_id"], pdf_upload)) == 1


class TestStoredApplications:
    """Listing, ranking, export and maintenance use persisted scores only"""

    @pytest.fixture
    def ranked(self, env):
        now = datetime.utcnow()
        env.applications.docs.extend([
            stored_application(env.job, "s1", "Early Bird", 80, now - timedelta(hours=3)),
            stored_application(env.job, "s2", "Top Scorer", 95, now - timedelta(hours=2)),
            stored_application(env.job, "s3", "Late Tie", 80, now - timedelta(hours=1)),
        ])
        return env

    def test_chart_sorted_by_score_then_time(self, ranked, employer):
        points = asyncio.run(ranked.service.score_chart(employer, ranked.job["job_id"]))
        assert [p["applicant_name"] for p in points] == ["Top Scorer", "Early Bird", "Late Tie"]
        assert [p["ats_score"] for p in points] == [95, 80, 80]
        ranked.generate.assert_not_called()

    def test_csv_export(self, ranked, employer):
        csv_text = asyncio.run(ranked.service.export_csv(employer, ranked.job["job_id"]))
        lines = csv_text.strip().splitlines()
        assert lines[0] == "rank,application_id,name,email,ats_score,status,applied_at"
        assert lines[1].startswith("1,app-s2,Top Scorer,s2@example.com,95,Pending,")
        assert len(lines) == 4

    def test_csv_export_empty_job_has_header_only(self, env, employer):
        csv_text = asyncio.run(env.service.export_csv(employer, env.job["job_id"]))
        assert csv_text.strip() == "rank,application_id,name,email,ats_score,status,applied_at"

    def test_other_employer_cannot_view(self, ranked):
        from jobconnect.models.models import CurrentUser, UserRole
        stranger = CurrentUser(user_id="employer-2", role=UserRole.EMPLOYER)
        with pytest.raises(AuthorizationError):
            asyncio.run(ranked.service.list_for_job(stranger, ranked.job["job_id"]))

    def test_seeker_cannot_list_job_applications(self, ranked, seeker):
        with pytest.raises(ValidationError):
            asyncio.run(ranked.service.list_for_job(seeker, ranked.job["job_id"]))

    def test_applicant_listing_joins_job(self, env, seeker, pdf_upload, application_fields):
        submit(env, seeker, application_fields(env.job["job_id"]), pdf_upload)
        mine = asyncio.run(env.service.list_for_applicant(seeker))
        assert len(mine) == 1
        assert mine[0].job_title == "Frontend Engineer"
        assert mine[0].company_name == "Acme"

    def test_status_update_keeps_score(self, ranked, employer):
        updated = asyncio.run(ranked.service.update_status(employer, "app-s2", "Accepted"))
        assert updated.status == "Accepted"
        assert updated.ats_score == 95
        doc = asyncio.run(ranked.applications.find_one({"application_id": "app-s2"}))
        assert doc["status"] == "Accepted"
        assert doc["ats_score"] == 95

    def test_applicant_cannot_update_status(self, ranked, seeker):
        with pytest.raises(ValidationError):
            asyncio.run(ranked.service.update_status(seeker, "app-s1", "Accepted"))

    def test_get_requires_involvement(self, ranked, seeker, employer):
        assert asyncio.run(ranked.service.get(employer, "app-s1")).name == "Early Bird"
        with pytest.raises(AuthorizationError):
            asyncio.run(ranked.service.get(seeker, "app-s1"))

    def test_delete_removes_shortlist_entry(self, ranked, employer):
        ranked.jobs.docs[0]["shortlist"] = [{"applicant_user_id": "s1", "application_id": "app-s1"}]

        asyncio.run(ranked.service.delete(employer, "app-s1"))

        assert ranked.applications.count({"application_id": "app-s1"}) == 0
        assert ranked.jobs.docs[0]["shortlist"] == []

    def test_delete_unknown(self, env, employer):
        with pytest.raises(NotFoundError):
            asyncio.run(env.service.delete(employer, "nope"))
