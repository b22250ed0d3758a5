"""
Database models for the Bayanihan job marketplace.

All models use UUID primary keys and include created_at/updated_at timestamps.
"""
from bayanihan.models.base import BaseModel, SoftDeleteMixin, TimestampMixin, UUIDMixin
from bayanihan.models.enums import (
    ACTIVE_PAYMENT_STATUSES,
    ApplicationStatus,
    JobStatus,
    NotificationKind,
    PaymentMethod,
    PaymentStatus,
    UserRole,
)
from bayanihan.models.user import User
from bayanihan.models.job import Application, Job
from bayanihan.models.payment import Payment
from bayanihan.models.goal import Goal, GoalCredit
from bayanihan.models.notification import Notification

__all__ = [
    "BaseModel",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDMixin",
    "ACTIVE_PAYMENT_STATUSES",
    "ApplicationStatus",
    "JobStatus",
    "NotificationKind",
    "PaymentMethod",
    "PaymentStatus",
    "UserRole",
    "User",
    "Application",
    "Job",
    "Payment",
    "Goal",
    "GoalCredit",
    "Notification",
]
