"""
Job model - the central entity of the marketplace.

A job carries its own applicant sub-ledger (`applicants`, JSONB) so that
one row lock covers the job and every candidacy on it.
"""
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bayanihan.models.base import BaseModel, SoftDeleteMixin, utcnow
from bayanihan.models.enums import ApplicationStatus, JobStatus


@dataclass(frozen=True)
class Application:
    """One worker's candidacy on a job, as stored in Job.applicants."""

    user_id: uuid.UUID
    status: ApplicationStatus
    applied_at: datetime

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Application":
        applied_at = raw.get("applied_at")
        return cls(
            user_id=uuid.UUID(str(raw["user_id"])),
            status=ApplicationStatus(raw.get("status", ApplicationStatus.PENDING.value)),
            applied_at=datetime.fromisoformat(applied_at) if applied_at else utcnow(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "status": self.status.value,
            "applied_at": self.applied_at.isoformat(),
        }

    def with_status(self, status: ApplicationStatus) -> "Application":
        return replace(self, status=status)


class Job(SoftDeleteMixin, BaseModel):
    """
    Job posting.

    Lifecycle columns (is_open, status, completed, assigned_to) are only
    changed by the lifecycle controller; the check constraints below are
    the database's copy of its invariants.
    """

    __tablename__ = "jobs"

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_jobs_price_positive"),
        CheckConstraint(
            "assigned_to IS NULL OR (NOT is_open AND status <> 'open')",
            name="ck_jobs_assigned_not_open",
        ),
        CheckConstraint(
            "NOT completed OR (assigned_to IS NOT NULL AND coalesce(payment_proof, '') <> '')",
            name="ck_jobs_completed_requires_proof",
        ),
        Index("ix_jobs_deleted_open", "is_deleted", "is_open"),
        Index("ix_jobs_applicants", "applicants", postgresql_using="gin"),
    )

    # Descriptive fields (editable until completion)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    skills_required: Mapped[List[str]] = mapped_column(JSONB, default=list, nullable=False)
    barangay: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    posted_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    date_posted: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    # Lifecycle
    is_open: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=JobStatus.OPEN.value,
        nullable=False,
    )  # 'open', 'assigned', 'closed', 'completed'
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    assigned_to: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=True,
        index=True,
    )
    applicants: Mapped[List[dict]] = mapped_column(JSONB, default=list, nullable=False)
    payment_proof: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # opaque URI
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __init__(self, **kwargs: Any):
        # Column defaults only apply at flush; a fresh Job must already be a valid open job
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("skills_required", [])
        kwargs.setdefault("applicants", [])
        kwargs.setdefault("date_posted", utcnow())
        kwargs.setdefault("is_open", True)
        kwargs.setdefault("status", JobStatus.OPEN.value)
        kwargs.setdefault("completed", False)
        kwargs.setdefault("is_deleted", False)
        super().__init__(**kwargs)

    @property
    def applications(self) -> List[Application]:
        return [Application.from_dict(raw) for raw in (self.applicants or [])]

    def set_applications(self, applications: List[Application]) -> None:
        # Reassign rather than mutate so the JSONB change is flushed
        self.applicants = [a.to_dict() for a in applications]

    def find_application(self, user_id: uuid.UUID) -> Optional[Application]:
        for application in self.applications:
            if application.user_id == user_id:
                return application
        return None

    def __repr__(self) -> str:
        return f"<Job {self.title} ({self.status})>"
