"""
Job repository - data access for Job entity.
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.dialects.postgresql import array
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.models.goal import GoalCredit
from bayanihan.models.job import Job
from bayanihan.repositories.base import BaseRepository

SORTABLE_FIELDS = {
    "date_posted": Job.date_posted,
    "price": Job.price,
    "title": Job.title,
}


class JobRepository(BaseRepository[Job]):
    def __init__(self):
        super().__init__(Job)

    def _ordered(self, query: Select, sort_by: str, order: str) -> Select:
        column = SORTABLE_FIELDS.get(sort_by, Job.date_posted)
        primary = column.asc() if order == "asc" else column.desc()
        return query.order_by(primary, Job.id)

    async def _paginate(
        self,
        db: AsyncSession,
        query: Select,
        page: int,
        limit: int,
    ) -> Tuple[List[Job], int]:
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await db.execute(count_query)).scalar() or 0

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all()), total

    async def find_open(
        self,
        db: AsyncSession,
    ) -> List[Job]:
        """Candidate pool for matching: open, not completed, not deleted."""
        query = self._visible(
            select(Job).where(Job.is_open.is_(True), Job.completed.is_(False)),
            include_deleted=False,
        )
        result = await db.execute(query.order_by(Job.date_posted.desc(), Job.id))
        return list(result.scalars().all())

    async def find_with_filters(
        self,
        db: AsyncSession,
        *,
        posted_by: Optional[UUID] = None,
        status: Optional[str] = None,
        completed: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "date_posted",
        order: str = "desc",
        page: int = 1,
        limit: int = 20,
        include_deleted: bool = False,
    ) -> Tuple[List[Job], int]:
        """
        Job listing. Without `posted_by` only open, uncompleted jobs are
        listed; an explicit `completed` overrides that default.

        Returns:
            Tuple of (jobs list, total count)
        """
        filters = []

        if posted_by is not None:
            filters.append(Job.posted_by == posted_by)
        else:
            filters.append(Job.is_open.is_(True))
            if completed is None:
                filters.append(Job.completed.is_(False))

        if completed is not None:
            filters.append(Job.completed.is_(completed))
        if status:
            filters.append(Job.status == status)
        if start_date:
            filters.append(Job.date_posted >= start_date)
        if end_date:
            filters.append(Job.date_posted <= end_date)

        query = self._visible(select(Job).where(and_(*filters)), include_deleted)
        return await self._paginate(db, self._ordered(query, sort_by, order), page, limit)

    async def search(
        self,
        db: AsyncSession,
        *,
        keyword: Optional[str] = None,
        skills: Optional[Sequence[str]] = None,
        barangay: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        sort_by: str = "date_posted",
        order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Job], int]:
        """Keyword/skill/barangay/price search over open, uncompleted jobs."""
        filters = [Job.is_open.is_(True), Job.completed.is_(False)]

        if keyword and keyword.strip():
            pattern = f"%{keyword.strip()}%"
            filters.append(or_(Job.title.ilike(pattern), Job.description.ilike(pattern)))
        if skills:
            filters.append(Job.skills_required.has_any(array(list(skills))))
        if barangay:
            filters.append(Job.barangay.ilike(f"%{barangay}%"))
        if min_price is not None:
            filters.append(Job.price >= min_price)
        if max_price is not None:
            filters.append(Job.price <= max_price)

        query = self._visible(select(Job).where(and_(*filters)), include_deleted=False)
        return await self._paginate(db, self._ordered(query, sort_by, order), page, limit)

    async def find_popular(
        self,
        db: AsyncSession,
        limit: int = 10,
    ) -> List[Job]:
        """Open jobs with the most applicants, newest first on ties."""
        query = self._visible(
            select(Job).where(Job.is_open.is_(True), Job.completed.is_(False)),
            include_deleted=False,
        ).order_by(
            func.jsonb_array_length(Job.applicants).desc(),
            Job.date_posted.desc(),
        ).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def find_by_poster(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        with_applicants_only: bool = False,
    ) -> List[Job]:
        """Jobs posted by a user, optionally only those with applicants."""
        query = select(Job).where(Job.posted_by == user_id)
        if with_applicants_only:
            query = query.where(func.jsonb_array_length(Job.applicants) > 0)
        query = self._visible(query, include_deleted=False)
        result = await db.execute(query.order_by(Job.date_posted.desc()))
        return list(result.scalars().all())

    async def find_applied_by(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> List[Job]:
        """Jobs whose applicant sub-ledger contains the user (uses the GIN index)."""
        query = self._visible(
            select(Job).where(Job.applicants.contains([{"user_id": str(user_id)}])),
            include_deleted=False,
        )
        result = await db.execute(query.order_by(Job.date_posted.desc()))
        return list(result.scalars().all())

    async def find_deleted(
        self,
        db: AsyncSession,
    ) -> List[Job]:
        """Tombstoned jobs, most recently deleted first."""
        result = await db.execute(
            select(Job).where(Job.is_deleted.is_(True)).order_by(Job.deleted_at.desc())
        )
        return list(result.scalars().all())

    async def find_by_ids(
        self,
        db: AsyncSession,
        job_ids: Sequence[UUID],
    ) -> List[Job]:
        if not job_ids:
            return []
        query = self._visible(select(Job).where(Job.id.in_(job_ids)), include_deleted=False)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def find_completed_without_credit(
        self,
        db: AsyncSession,
        *,
        completed_before: datetime,
        limit: int = 100,
    ) -> List[Job]:
        """Completed jobs that never got their goal credit (crash between commit and credit)."""
        query = (
            select(Job)
            .outerjoin(GoalCredit, GoalCredit.job_id == Job.id)
            .where(
                Job.completed.is_(True),
                Job.assigned_to.is_not(None),
                Job.completed_at < completed_before,
                GoalCredit.id.is_(None),
            )
            .order_by(Job.completed_at)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())
