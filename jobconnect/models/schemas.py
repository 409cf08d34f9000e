from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum


class JobType(str, Enum):
    FULL_TIME = "Full Time"
    PART_TIME = "Part Time"


class ApplicationStatus(str, Enum):
    PENDING = "Pending"
    REVIEWED = "Reviewed"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


# -------- Jobs --------
class Duration(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class ShortlistEntry(BaseModel):
    applicant_user_id: str
    application_id: str


class JobModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    job_id: str
    title: str
    company_name: str
    description: str
    category: str
    country: str
    city: str
    location: str
    required_skills: List[str]
    fixed_salary: Optional[int] = None
    salary_from: Optional[int] = None
    salary_to: Optional[int] = None
    job_type: JobType
    duration: Optional[Duration] = None
    posted_by: str
    expired: bool = False
    shortlist: List[ShortlistEntry] = []
    posted_on: datetime = Field(default_factory=datetime.utcnow)


# -------- Applications --------
class ResumeDocument(BaseModel):
    url: str
    stored_name: str


class ApplicationModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    application_id: str
    applicant_user_id: str
    employer_user_id: str
    job_id: str
    name: str
    email: str
    cover_letter: str
    phone: str
    address: str
    resume: ResumeDocument
    ats_score: int = Field(ge=0, le=100)
    status: ApplicationStatus = Field(default=ApplicationStatus.PENDING, validate_default=True)
    applied_at: datetime = Field(default_factory=datetime.utcnow)
    # filled only on the applicant's listing
    job_title: Optional[str] = None
    company_name: Optional[str] = None
