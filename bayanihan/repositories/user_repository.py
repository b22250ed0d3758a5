"""
User repository - data access for User entity.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.models.enums import UserRole
from bayanihan.models.user import User
from bayanihan.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self):
        super().__init__(User)

    async def get_active_by_id(
        self,
        db: AsyncSession,
        user_id: UUID,
    ) -> Optional[User]:
        """Find an active user by ID."""
        result = await db.execute(
            select(User).where(
                User.id == user_id,
                User.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def find_workers_in_barangay(
        self,
        db: AsyncSession,
        barangay: str,
    ) -> List[User]:
        """
        Active employee-capable users in a barangay, compared ignoring case
        and spaces. This is a prefilter: the caller applies the matching
        engine's exact rules, skill overlap included.
        """
        key = "".join(barangay.split()).lower()
        result = await db.execute(
            select(User).where(
                func.lower(func.replace(User.barangay, " ", "")) == key,
                User.role.in_([UserRole.EMPLOYEE.value, UserRole.BOTH.value]),
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())
