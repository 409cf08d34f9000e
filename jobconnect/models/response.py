from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from jobconnect.models.schemas import ApplicationModel, JobModel


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ApplicationResponse(BaseModel):
    success: bool = True
    message: str
    application: ApplicationModel


class ApplicationListResponse(BaseModel):
    success: bool = True
    applications: List[ApplicationModel]


class AtsScoreResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "ATS Score Calculated Successfully!"
    ats_score: int = Field(ge=0, le=100, alias="atsScore")


class ScoreChartPoint(BaseModel):
    application_id: str
    applicant_name: str
    ats_score: int


class ScoreChartResponse(BaseModel):
    success: bool = True
    job_id: str
    points: List[ScoreChartPoint]


class JobResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    job: JobModel


class JobListResponse(BaseModel):
    success: bool = True
    jobs: List[JobModel]
