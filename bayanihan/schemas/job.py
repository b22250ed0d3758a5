"""
Job schemas.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, List
from uuid import UUID

from pydantic import Field, field_validator

from bayanihan.models.enums import ApplicationStatus, JobStatus
from bayanihan.schemas.base import BaseSchema, TimestampSchema, IDSchema
from bayanihan.schemas.notification import NotificationResponse


def _strip_skills(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    return [s.strip() for s in value if s and s.strip()]


class JobCreate(BaseSchema):
    """Body of POST /jobs."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    skills_required: List[str] = []
    barangay: str = Field(..., min_length=1, max_length=120)
    location: Optional[str] = Field(None, max_length=255)
    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)

    @field_validator("skills_required")
    @classmethod
    def clean_skills(cls, value):
        return _strip_skills(value)


class JobUpdate(BaseSchema):
    """Body of PUT /jobs/{id}; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    skills_required: Optional[List[str]] = None
    barangay: Optional[str] = Field(None, min_length=1, max_length=120)
    location: Optional[str] = Field(None, max_length=255)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)

    @field_validator("skills_required")
    @classmethod
    def clean_skills(cls, value):
        return _strip_skills(value)


class ApplicationResponse(BaseSchema):
    user_id: UUID
    status: ApplicationStatus
    applied_at: datetime


class JobResponse(IDSchema, TimestampSchema):
    """Full job document."""

    title: str
    description: Optional[str] = None
    skills_required: List[str] = []
    barangay: str
    location: Optional[str] = None
    price: Decimal
    posted_by: UUID
    date_posted: datetime
    is_open: bool
    status: JobStatus
    completed: bool
    assigned_to: Optional[UUID] = None
    applicants: List[ApplicationResponse] = []
    payment_proof: Optional[str] = None
    completed_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None


class JobPosted(BaseSchema):
    job: JobResponse
    matches_found: int


class JobMatchResponse(BaseSchema):
    """A recommended job with the reasons it was ranked where it was."""

    job: JobResponse
    match_score: float
    matching_skills: List[str]
    skill_match_percentage: float
    location_match: bool
    recency_days: float
    match_details: Dict[str, Any] = {}


class MyApplicationItem(BaseSchema):
    job: JobResponse
    application_status: ApplicationStatus
    applied_at: datetime


class InvitationItem(BaseSchema):
    invitation: NotificationResponse
    job: JobResponse


class ApplicantRef(BaseSchema):
    """Body of POST /jobs/{id}/assign and /reject."""

    user_id: UUID


class InviteRequest(BaseSchema):
    worker_id: UUID


class ApplicantStatusUpdate(BaseSchema):
    status: ApplicationStatus


class JobSearchParams(BaseSchema):
    keyword: Optional[str] = None
    skill: Optional[str] = None  # comma-separated, any-of
    barangay: Optional[str] = None
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)

    @property
    def skills(self) -> List[str]:
        if not self.skill:
            return []
        return [s.strip() for s in self.skill.split(",") if s.strip()]


class ProofLink(BaseSchema):
    job_id: UUID
    payment_proof: str
    url: Optional[str] = None
