"""
Goal repository - data access for Goal and GoalCredit.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.models.goal import Goal, GoalCredit
from bayanihan.repositories.base import BaseRepository


class GoalRepository(BaseRepository[Goal]):
    def __init__(self):
        super().__init__(Goal)

    async def get_active(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> Optional[Goal]:
        """The user's active, incomplete goal (locked for the credit transaction)."""
        result = await db.execute(
            select(Goal)
            .where(
                Goal.user_id == user_id,
                Goal.is_active.is_(True),
                Goal.completed.is_(False),
                Goal.is_deleted.is_(False),
            )
            .with_for_update()
        )
        return result.scalars().first()

    async def get_next_in_line(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> Optional[Goal]:
        """
        Goal to activate after the active one completes: a flagged
        priority goal first, otherwise the lowest `priority` number.
        """
        result = await db.execute(
            select(Goal)
            .where(
                Goal.user_id == user_id,
                Goal.completed.is_(False),
                Goal.is_active.is_(False),
                Goal.is_deleted.is_(False),
            )
            .order_by(Goal.is_priority.desc(), Goal.priority.asc(), Goal.created_at.asc())
            .limit(1)
            .with_for_update()
        )
        return result.scalars().first()

    async def claim_credit(
        self,
        db: AsyncSession,
        *,
        job_id: UUID,
        user_id: UUID,
        amount,
    ) -> Optional[GoalCredit]:
        """
        Insert the ledger row for a job's income. Returns None when the job
        was already credited (unique job_id); the caller then does nothing.
        """
        stmt = (
            pg_insert(GoalCredit)
            .values(job_id=job_id, user_id=user_id, amount=amount)
            .on_conflict_do_nothing(index_elements=[GoalCredit.job_id])
            .returning(GoalCredit.id)
        )
        credit_id = (await db.execute(stmt)).scalar_one_or_none()
        if credit_id is None:
            return None
        return await db.get(GoalCredit, credit_id)
