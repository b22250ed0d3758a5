"""
Notification repository - data access for in-app notifications.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.models.enums import NotificationKind
from bayanihan.models.notification import Notification
from bayanihan.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self):
        super().__init__(Notification)

    async def find_invitation(
        self,
        db: AsyncSession,
        *,
        job_id: UUID,
        invitee_id: UUID,
    ) -> Optional[Notification]:
        """Existing invitation for (job, invitee), used to refuse duplicates."""
        result = await db.execute(
            select(Notification).where(
                Notification.recipient_id == invitee_id,
                Notification.kind == NotificationKind.JOB_INVITATION.value,
                Notification.related_job_id == job_id,
            )
        )
        return result.scalars().first()

    async def find_invitations_for(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> List[Notification]:
        result = await db.execute(
            select(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.kind == NotificationKind.JOB_INVITATION.value,
            )
            .order_by(Notification.created_at.desc())
        )
        return list(result.scalars().all())

    async def mark_invitation_read(
        self,
        db: AsyncSession,
        *,
        job_id: UUID,
        invitee_id: UUID,
    ) -> int:
        """Mark (job, invitee) invitations read; returns the number touched."""
        result = await db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == invitee_id,
                Notification.kind == NotificationKind.JOB_INVITATION.value,
                Notification.related_job_id == job_id,
            )
            .values(is_read=True)
        )
        return result.rowcount
