"""
Payment repository - data access for Payment entity.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.models.enums import ACTIVE_PAYMENT_STATUSES, PaymentStatus
from bayanihan.models.payment import Payment
from bayanihan.repositories.base import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self):
        super().__init__(Payment)

    async def find_active_for_job(
        self,
        db: AsyncSession,
        job_id: UUID,
    ) -> Optional[Payment]:
        """The pending/processing/succeeded payment for a job, if any."""
        result = await db.execute(
            select(Payment).where(
                Payment.job_id == job_id,
                Payment.status.in_([s.value for s in ACTIVE_PAYMENT_STATUSES]),
            )
        )
        return result.scalars().first()

    async def get_by_gateway_ref(
        self,
        db: AsyncSession,
        *,
        source_id: Optional[str] = None,
        payment_id: Optional[str] = None,
        intent_id: Optional[str] = None,
    ) -> Optional[Payment]:
        """Locate a payment by one PayMongo reference, locking the row."""
        if source_id:
            condition = Payment.paymongo_source_id == source_id
        elif payment_id:
            condition = Payment.paymongo_payment_id == payment_id
        elif intent_id:
            condition = Payment.paymongo_payment_intent_id == intent_id
        else:
            return None
        result = await db.execute(select(Payment).where(condition).with_for_update())
        return result.scalars().first()

    async def find_for_job(
        self,
        db: AsyncSession,
        job_id: UUID,
    ) -> List[Payment]:
        result = await db.execute(
            select(Payment).where(Payment.job_id == job_id).order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    async def find_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        direction: str = "all",
    ) -> List[Payment]:
        """Payments a user sent (as employer), received (as worker), or both."""
        if direction == "sent":
            condition = Payment.employer_id == user_id
        elif direction == "received":
            condition = Payment.worker_id == user_id
        else:
            condition = or_(Payment.employer_id == user_id, Payment.worker_id == user_id)
        result = await db.execute(
            select(Payment).where(condition).order_by(Payment.created_at.desc())
        )
        return list(result.scalars().all())

    async def find_stuck(
        self,
        db: AsyncSession,
        *,
        created_before: datetime,
        limit: int = 100,
    ) -> List[Payment]:
        """Gateway payments still pending/processing past the reconciliation threshold."""
        result = await db.execute(
            select(Payment)
            .where(
                Payment.status.in_([PaymentStatus.PENDING.value, PaymentStatus.PROCESSING.value]),
                Payment.created_at < created_before,
                or_(
                    Payment.paymongo_payment_intent_id.is_not(None),
                    Payment.paymongo_payment_id.is_not(None),
                ),
            )
            .order_by(Payment.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())
