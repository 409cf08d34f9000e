import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from jobconnect.middleware.error_handlers import (
    ExceptionHandlerMiddleware, PerformanceMiddleware, register_exception_handlers
)
from jobconnect.utils.config import Settings
from jobconnect.utils.exceptions import (
    DatabaseError, ExceptionContext, InvalidDocument, NotFoundError, StorageFailure, status_code_for
)


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(PerformanceMiddleware, slow_request_threshold=10.0)
    app.add_middleware(ExceptionHandlerMiddleware)
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Job not found!", resource="job", resource_id="j1")

    @app.get("/storage")
    async def storage():
        raise StorageFailure("Resume could not be stored. Please try again later.", cause=OSError("disk full"))

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret internals")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorEnvelope:
    """Every failure leaves the API as {success: false, message, ...}"""

    def test_domain_exception(self, client):
        response = client.get("/missing")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Job not found!"
        assert body["error_code"] == "NOT_FOUND"
        assert response.headers["X-Request-ID"] == body["request_id"]

    def test_cause_not_exposed(self, client):
        response = client.get("/storage")
        assert response.status_code == 502
        assert "disk full" not in response.text

    def test_unexpected_exception_is_generic_500(self, client):
        response = client.get("/boom")
        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "secret internals" not in response.text
        assert "X-Request-ID" in response.headers


class TestExceptionHelpers:
    def test_status_codes_follow_hierarchy(self):
        from jobconnect.utils.exceptions import DuplicateApplication
        assert status_code_for(DuplicateApplication()) == 400
        assert status_code_for(InvalidDocument("bad")) == 400
        assert status_code_for(DatabaseError("db")) == 500

    def test_exception_context_wraps_unknown_errors(self):
        with pytest.raises(DatabaseError) as exc:
            with ExceptionContext("insert_job", job_id="j1"):
                raise ConnectionError("mongo down")
        assert exc.value.details["job_id"] == "j1"
        assert isinstance(exc.value.cause, ConnectionError)

    def test_exception_context_keeps_domain_errors(self):
        with pytest.raises(NotFoundError):
            with ExceptionContext("find_job"):
                raise NotFoundError("Job not found!")


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LLM_TIMEOUT", "12.5")
        monkeypatch.setenv("RESUME_MAX_BYTES", "1024")
        monkeypatch.setenv("FRONTEND_URL", "https://jobs.example.com/")
        settings = Settings.from_env()
        assert settings.llm_timeout == 12.5
        assert settings.resume_max_bytes == 1024
        assert settings.frontend_url == "https://jobs.example.com"

    def test_defaults(self, monkeypatch):
        for name in ("RESUME_TEXT_MAX_CHARS", "MIN_ATS_SCORE", "STORAGE_PREFIX"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.resume_text_max_chars == 3000
        assert settings.min_ats_score == 1
        assert settings.storage_prefix == "resume1"
