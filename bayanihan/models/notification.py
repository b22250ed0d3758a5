"""
Notification model - in-app notification records.
"""
import uuid
from typing import Optional
from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bayanihan.models.base import BaseModel


class Notification(BaseModel):
    """
    In-app notification. Job invitations are notifications of kind
    'job_invitation'; there is no separate invitation table.
    """

    __tablename__ = "notifications"

    __table_args__ = (
        Index("ix_notifications_recipient_kind_job", "recipient_id", "kind", "related_job_id"),
    )

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(40), nullable=False)  # NotificationKind value
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_job_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("jobs.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Notification {self.kind} -> {self.recipient_id}>"
