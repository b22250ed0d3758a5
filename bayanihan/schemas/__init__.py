"""
Pydantic schemas for API validation and serialization.
"""
from bayanihan.schemas.base import (
    BaseSchema,
    ApiResponse,
    PaginatedResponse,
    ErrorResponse,
)
from bayanihan.schemas.notification import NotificationResponse
from bayanihan.schemas.job import (
    JobCreate,
    JobUpdate,
    JobResponse,
    JobPosted,
    JobMatchResponse,
    JobSearchParams,
    ApplicationResponse,
    MyApplicationItem,
    InvitationItem,
    ApplicantRef,
    InviteRequest,
    ApplicantStatusUpdate,
    ProofLink,
)
from bayanihan.schemas.payment import (
    PaymentInitiateRequest,
    PaymentInitiated,
    PaymentResponse,
    FeeBreakdown,
    WebhookAck,
)

__all__ = [
    # Base
    "BaseSchema",
    "ApiResponse",
    "PaginatedResponse",
    "ErrorResponse",
    # Notification
    "NotificationResponse",
    # Job
    "JobCreate",
    "JobUpdate",
    "JobResponse",
    "JobPosted",
    "JobMatchResponse",
    "JobSearchParams",
    "ApplicationResponse",
    "MyApplicationItem",
    "InvitationItem",
    "ApplicantRef",
    "InviteRequest",
    "ApplicantStatusUpdate",
    "ProofLink",
    # Payment
    "PaymentInitiateRequest",
    "PaymentInitiated",
    "PaymentResponse",
    "FeeBreakdown",
    "WebhookAck",
]
