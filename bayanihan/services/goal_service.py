"""
Goal service - credits completed-job income to a worker's savings goals.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.core.logging import get_logger
from bayanihan.models.base import utcnow
from bayanihan.models.enums import NotificationKind
from bayanihan.models.goal import Goal
from bayanihan.repositories.goal_repository import GoalRepository
from bayanihan.services.lifecycle import Notify

logger = get_logger(__name__)


@dataclass
class CreditOutcome:
    """What a credit did to the worker's goals."""

    worker_id: UUID
    amount: Decimal
    goal: Goal
    goal_completed: bool = False
    activated_goal: Optional[Goal] = None

    def notifications(self, job_id: UUID, job_title: str) -> List[Notify]:
        notes = [
            Notify(
                self.worker_id,
                NotificationKind.GOAL_INCOME_ADDED,
                f'PHP {self.amount} from job "{job_title}" was added to your goal: {self.goal.description}',
                job_id,
            )
        ]
        if self.goal_completed:
            notes.append(Notify(
                self.worker_id,
                NotificationKind.GOAL_COMPLETED_JOB,
                f"Your job completion helped you reach your goal: {self.goal.description}!",
                job_id,
            ))
            notes.append(Notify(
                self.worker_id,
                NotificationKind.GOAL_COMPLETED,
                f"Congratulations! You completed your goal: {self.goal.description}",
            ))
        if self.activated_goal is not None:
            notes.append(Notify(
                self.worker_id,
                NotificationKind.GOAL_ACTIVATED,
                f"New active goal: {self.activated_goal.description}",
            ))
        return notes


class GoalService:
    """Applies job income to goals, exactly once per job."""

    def __init__(self):
        self.goal_repo = GoalRepository()

    async def credit_income(
        self,
        db: AsyncSession,
        *,
        worker_id: UUID,
        amount: Decimal,
        job_id: UUID,
    ) -> Optional[CreditOutcome]:
        """
        Add `amount` to the worker's active goal and roll over on completion.

        Returns None when the job was already credited or the worker has no
        active goal. The caller commits.
        """
        credit = await self.goal_repo.claim_credit(db, job_id=job_id, user_id=worker_id, amount=amount)
        if credit is None:
            logger.info("goal_credit_already_applied", job_id=str(job_id))
            return None

        goal = await self.goal_repo.get_active(db, worker_id)
        if goal is None:
            logger.info("goal_credit_no_active_goal", job_id=str(job_id), worker_id=str(worker_id))
            return None

        credit.goal_id = goal.id
        goal.current_amount = Decimal(goal.current_amount) + Decimal(amount)
        outcome = CreditOutcome(worker_id=worker_id, amount=Decimal(amount), goal=goal)

        if goal.current_amount >= goal.target_amount:
            excess = goal.current_amount - goal.target_amount
            goal.completed = True
            goal.is_active = False
            goal.completed_at = utcnow()
            outcome.goal_completed = True

            next_goal = await self.goal_repo.get_next_in_line(db, worker_id)
            if next_goal is not None:
                next_goal.is_active = True
                next_goal.is_priority = False
                if excess > 0:
                    next_goal.current_amount = Decimal(next_goal.current_amount) + excess
                    goal.current_amount = goal.target_amount
                outcome.activated_goal = next_goal

        await db.flush()
        logger.info(
            "goal_credited",
            job_id=str(job_id),
            goal_id=str(goal.id),
            amount=str(amount),
            goal_completed=outcome.goal_completed,
        )
        return outcome
