"""
Process-wide service wiring, overridable through FastAPI dependency_overrides
"""
from functools import lru_cache

from jobconnect.services.applications import ApplicationService
from jobconnect.services.ats import LLMScorer
from jobconnect.services.notifications import EmailSender, Notifier
from jobconnect.services.storage import build_resume_store
from jobconnect.utils.config import get_settings
from jobconnect.utils.llm import ollama_generate


@lru_cache()
def get_notifier() -> Notifier:
    return Notifier(EmailSender.from_settings(get_settings()))


@lru_cache()
def get_application_service() -> ApplicationService:
    from jobconnect.services.db import applications_coll, jobs_coll

    settings = get_settings()
    scorer = LLMScorer(
        ollama_generate,
        timeout=settings.llm_timeout,
        max_chars=settings.resume_text_max_chars,
        retry_attempts=settings.llm_retry_attempts,
    )
    return ApplicationService(
        jobs=jobs_coll,
        applications=applications_coll,
        scorer=scorer,
        store=build_resume_store(settings),
        notifier=get_notifier(),
        settings=settings,
    )
