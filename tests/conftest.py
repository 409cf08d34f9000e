import os
import uuid
from datetime import datetime, timedelta

import pytest

os.environ.setdefault("ENVIRONMENT", "testing")

from jobconnect.models.models import CurrentUser, ResumeUpload, UserRole  # noqa: E402
from jobconnect.utils.config import Settings  # noqa: E402
from tests.fakes import PDF_BYTES  # noqa: E402


@pytest.fixture
def settings(tmp_path):
    return Settings(local_upload_dir=str(tmp_path / "resumes"), llm_timeout=0.2, smtp_host=None)


@pytest.fixture
def seeker():
    return CurrentUser(user_id="seeker-1", name="Ada Lovelace", email="ada@example.com", role=UserRole.JOB_SEEKER)


@pytest.fixture
def other_seeker():
    return CurrentUser(user_id="seeker-2", name="Alan Turing", email="alan@example.com", role=UserRole.JOB_SEEKER)


@pytest.fixture
def employer():
    return CurrentUser(user_id="employer-1", name="Grace Hopper", email="grace@example.com", role=UserRole.EMPLOYER)


@pytest.fixture
def make_job():
    def _make(**overrides):
        job = {
            "job_id": str(uuid.uuid4()),
            "title": "Frontend Engineer",
            "company_name": "Acme",
            "description": "Build and maintain the customer dashboard in React.",
            "category": "Engineering",
            "country": "Ghana",
            "city": "Accra",
            "location": "12 Independence Avenue, Accra",
            "required_skills": ["React", "Node.js", "SQL"],
            "fixed_salary": 50000,
            "salary_from": None,
            "salary_to": None,
            "job_type": "Full Time",
            "duration": None,
            "posted_by": "employer-1",
            "expired": False,
            "shortlist": [],
            "posted_on": datetime.utcnow() - timedelta(days=1),
        }
        job.update(overrides)
        return job
    return _make


@pytest.fixture
def pdf_upload():
    return ResumeUpload(filename="resume.pdf", content_type="application/pdf", data=PDF_BYTES)


@pytest.fixture
def application_fields():
    def _fields(job_id, **overrides):
        fields = {
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "coverLetter": "I would love to join the team.",
            "phone": "+233 20 000 0000",
            "address": "1 Ring Road, Accra",
            "jobId": job_id,
        }
        fields.update(overrides)
        return fields
    return _fields
