"""
Goal models - a worker's savings targets and the job-income credits applied to them.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from bayanihan.models.base import BaseModel, SoftDeleteMixin


class Goal(SoftDeleteMixin, BaseModel):
    """
    Savings target. At most one goal per user is active; completed goals
    hand over to the next one (see GoalService.credit_income).
    """

    __tablename__ = "goals"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Lower number = earlier in line; is_priority jumps the queue once
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_priority: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    @property
    def progress(self) -> float:
        if not self.target_amount:
            return 0.0
        return float(self.current_amount / self.target_amount * 100)

    def __repr__(self) -> str:
        return f"<Goal {self.description} {self.current_amount}/{self.target_amount}>"


class GoalCredit(BaseModel):
    """
    Ledger of job income credited to goals. The unique job_id makes the
    credit happen at most once per job, however many times completion
    is replayed (webhook redelivery, reconciliation sweep).
    """

    __tablename__ = "goal_credits"

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    goal_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("goals.id", ondelete="SET NULL"),
        nullable=True,
    )  # NULL when the worker had no active goal
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    def __repr__(self) -> str:
        return f"<GoalCredit job={self.job_id} {self.amount}>"
