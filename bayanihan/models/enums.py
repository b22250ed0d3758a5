"""
Closed vocabularies for role and status columns.

Columns are stored as plain strings; these enums are what the code
compares against. Each enum is a `str` subclass, so `job.status == JobStatus.OPEN`
works whether the attribute was just loaded or just assigned.
"""
import enum


class UserRole(str, enum.Enum):
    EMPLOYEE = "employee"
    EMPLOYER = "employer"
    BOTH = "both"
    ADMIN = "admin"

    @property
    def can_work(self) -> bool:
        return self in (UserRole.EMPLOYEE, UserRole.BOTH)

    @property
    def can_post(self) -> bool:
        return self in (UserRole.EMPLOYER, UserRole.BOTH, UserRole.ADMIN)


class JobStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    CLOSED = "closed"
    COMPLETED = "completed"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


# At most one payment per job may be in one of these states
ACTIVE_PAYMENT_STATUSES = (
    PaymentStatus.PENDING,
    PaymentStatus.PROCESSING,
    PaymentStatus.SUCCEEDED,
)


class PaymentMethod(str, enum.Enum):
    GCASH = "gcash"
    PAYMAYA = "paymaya"
    GRAB_PAY = "grab_pay"
    CARD = "card"
    MANUAL = "manual"

    @property
    def is_ewallet(self) -> bool:
        return self in (PaymentMethod.GCASH, PaymentMethod.PAYMAYA, PaymentMethod.GRAB_PAY)


class NotificationKind(str, enum.Enum):
    JOB_MATCH = "job_match"
    JOB_APPLIED = "job_applied"
    APPLICATION_SENT = "application_sent"
    APPLICATION_CANCELLED = "application_cancelled"
    APPLICATION_REJECTED = "application_rejected"
    APPLICATION_UPDATE = "application_update"
    JOB_ACCEPTED = "job_accepted"
    JOB_INVITATION = "job_invitation"
    JOB_COMPLETED = "job_completed"
    JOB_UPDATE = "job_update"
    GOAL_INCOME_ADDED = "goal_income_added"
    GOAL_COMPLETED_JOB = "goal_completed_job"
    GOAL_COMPLETED = "goal_completed"
    GOAL_ACTIVATED = "goal_activated"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
