from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    JOB_SEEKER = "Job Seeker"
    EMPLOYER = "Employer"


class CurrentUser(BaseModel):
    """Authenticated caller as supplied by the identity provider"""
    user_id: str
    name: str = ""
    email: str = ""
    role: UserRole


class ResumeUpload(BaseModel):
    filename: str = "resume.pdf"
    content_type: str = ""
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)


class ExtractedText(BaseModel):
    text: str = ""
    readable: bool = True
    truncated: bool = False


class ScoreResult(BaseModel):
    score: int = Field(ge=0, le=100)
    skills_analysis: str = ""
    experience_analysis: str = ""
    education_analysis: str = ""
    additional_factors: str = ""
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    source: str = "heuristic"  # llm, heuristic, minimum
