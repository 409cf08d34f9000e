"""
Runtime configuration loaded from the environment (and .env)
"""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    """Service settings; every field maps to an upper-case environment variable"""

    # Database
    mongo_details: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="job_portal", description="Database name")

    # Generative-text model
    ollama_base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    llm_model: str = Field(default="llama3.1:8b", description="Model used for ATS scoring")
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    llm_timeout: float = Field(default=30.0, gt=0, le=300, description="Seconds before the model call is abandoned")
    llm_retry_attempts: int = Field(default=1, ge=1, le=5, description="1 means a single attempt, then fallback")

    # Resume handling
    resume_max_bytes: int = Field(default=5 * 1024 * 1024, ge=1)
    resume_text_max_chars: int = Field(default=3000, ge=100)
    min_ats_score: int = Field(default=1, ge=1, le=100)

    # Object storage with local fallback
    storage_url: Optional[str] = Field(default=None, description="Supabase-compatible storage base URL")
    storage_key: Optional[str] = Field(default=None, description="Service-role key for object storage")
    storage_bucket: str = "resume"
    storage_prefix: str = "resume1"
    local_upload_dir: str = "uploads/resumes"
    public_base_url: str = "http://localhost:4000"

    # Email
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: str = "no-reply@jobconnect.local"
    frontend_url: str = "http://localhost:5173"

    @field_validator("ollama_base_url", "public_base_url", "frontend_url", "storage_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/") if v else v

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(name.upper())
            if raw not in (None, ""):
                values[name] = raw
        return cls(**values)


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
