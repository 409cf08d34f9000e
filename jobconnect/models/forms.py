"""
Request DTOs: every inbound payload is validated here, once, at the boundary
"""
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from jobconnect.models.schemas import ApplicationStatus, Duration, JobType
from jobconnect.utils.exceptions import ValidationError


class ApplicationForm(BaseModel):
    """Multipart fields of an application submission"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str
    email: str
    cover_letter: str = Field(alias="coverLetter")
    phone: str
    address: str
    job_id: str = Field(alias="jobId")

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "email", "coverLetter", "phone", "address", "jobId")

    @classmethod
    def from_form(cls, fields: Mapping[str, Any]) -> "ApplicationForm":
        missing = [key for key in cls.REQUIRED_FIELDS if not str(fields.get(key) or "").strip()]
        if missing:
            raise ValidationError(
                "Please fill all fields.",
                details={"missing_fields": missing}
            )
        return cls(**{key: fields[key] for key in cls.REQUIRED_FIELDS})


def _normalise_skills(skills: List[str]) -> List[str]:
    seen = set()
    out = []
    for skill in skills:
        cleaned = skill.strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            out.append(cleaned)
    return out


def check_salary(fixed_salary: Optional[int], salary_from: Optional[int], salary_to: Optional[int]) -> None:
    """Exactly one of a fixed salary or a complete range"""
    has_range = salary_from is not None and salary_to is not None
    if not has_range and fixed_salary is None:
        raise ValueError("Please either provide fixed salary or ranged salary.")
    if has_range and fixed_salary is not None:
        raise ValueError("Cannot Enter Fixed and Ranged Salary together.")
    if has_range and salary_from > salary_to:
        raise ValueError("salary_from cannot exceed salary_to.")


class JobCreate(BaseModel):
    title: str = Field(min_length=3, max_length=30)
    company_name: str = Field(min_length=1)
    description: str = Field(min_length=30, max_length=500)
    category: str = Field(min_length=1)
    country: str = Field(min_length=1)
    city: str = Field(min_length=1)
    location: str = Field(min_length=20)
    required_skills: List[str] = Field(min_length=1)
    fixed_salary: Optional[int] = Field(default=None, ge=1000, le=999999999)
    salary_from: Optional[int] = Field(default=None, ge=1000, le=999999999)
    salary_to: Optional[int] = Field(default=None, ge=1000, le=999999999)
    job_type: JobType
    duration: Optional[Duration] = None

    @field_validator("required_skills")
    @classmethod
    def validate_skills(cls, v):
        v = _normalise_skills(v)
        if not v:
            raise ValueError("At least one skill is required!")
        return v

    @model_validator(mode="after")
    def validate_salary(self):
        check_salary(self.fixed_salary, self.salary_from, self.salary_to)
        return self


class JobUpdate(BaseModel):
    """Partial update; salary consistency is re-checked against the stored job"""
    title: Optional[str] = Field(default=None, min_length=3, max_length=30)
    company_name: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=30, max_length=500)
    category: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=20)
    required_skills: Optional[List[str]] = None
    fixed_salary: Optional[int] = Field(default=None, ge=1000, le=999999999)
    salary_from: Optional[int] = Field(default=None, ge=1000, le=999999999)
    salary_to: Optional[int] = Field(default=None, ge=1000, le=999999999)
    job_type: Optional[JobType] = None
    duration: Optional[Duration] = None
    expired: Optional[bool] = None

    # only these may be cleared with an explicit null
    NULLABLE_FIELDS: ClassVar[Tuple[str, ...]] = ("fixed_salary", "salary_from", "salary_to", "duration")

    @field_validator("required_skills")
    @classmethod
    def validate_skills(cls, v):
        if v is None:
            return v
        v = _normalise_skills(v)
        if not v:
            raise ValueError("At least one skill is required!")
        return v

    @model_validator(mode="after")
    def reject_nulls(self):
        nulled = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.NULLABLE_FIELDS
        )
        if nulled:
            raise ValueError(f"Cannot clear required fields: {', '.join(nulled)}")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, mode="json")


class ShortlistRequest(BaseModel):
    job_id: str
    application_id: str
    applicant_user_id: str


class StatusUpdate(BaseModel):
    status: ApplicationStatus
