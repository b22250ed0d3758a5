"""
Notification schemas.
"""
from typing import Optional
from uuid import UUID

from bayanihan.models.enums import NotificationKind
from bayanihan.schemas.base import IDSchema, TimestampSchema


class NotificationResponse(IDSchema, TimestampSchema):
    recipient_id: UUID
    kind: NotificationKind
    message: str
    related_job_id: Optional[UUID] = None
    is_read: bool
