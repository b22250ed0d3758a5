"""
Effect dispatcher - runs the side effects a lifecycle transition emitted.

Called only after the primary change is committed. Each effect runs and
commits on its own; a failure is rolled back, logged at warning level and
skipped, never re-raised into the request that caused it.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.core.logging import get_logger
from bayanihan.services.goal_service import GoalService
from bayanihan.services.lifecycle import CreditGoal, Effect, Notify, NotifyMatchingWorkers, SendSms
from bayanihan.services.notification_service import NotificationService

logger = get_logger(__name__)


def _enqueue_matching_task(job_id: str) -> None:
    # Imported lazily so the API process does not import Celery at module load
    from bayanihan.workers.tasks import notify_matching_workers

    notify_matching_workers.delay(job_id)


@dataclass
class DispatchReport:
    delivered: int = 0
    failed: List[Effect] = field(default_factory=list)


class EffectDispatcher:
    def __init__(
        self,
        notification_service: Optional[NotificationService] = None,
        goal_service: Optional[GoalService] = None,
        enqueue_matching: Optional[Callable[[str], None]] = None,
    ):
        self.notification_service = notification_service or NotificationService()
        self.goal_service = goal_service or GoalService()
        self.enqueue_matching = enqueue_matching or _enqueue_matching_task

    async def dispatch(self, db: AsyncSession, effects: Sequence[Effect]) -> DispatchReport:
        report = DispatchReport()
        queue: List[Effect] = list(effects)

        while queue:
            effect = queue.pop(0)
            try:
                follow_up = await self._run(db, effect)
                await db.commit()
            except Exception as exc:
                await db.rollback()
                report.failed.append(effect)
                logger.warning(
                    "effect_failed",
                    effect=type(effect).__name__,
                    error=str(exc),
                    exc_type=type(exc).__name__,
                )
                continue
            report.delivered += 1
            queue.extend(follow_up)

        return report

    async def _run(self, db: AsyncSession, effect: Effect) -> List[Effect]:
        """Execute one effect; returns any effects it produced in turn."""
        if isinstance(effect, Notify):
            await self.notification_service.create(db, effect)
            return []
        if isinstance(effect, SendSms):
            await self.notification_service.send_sms(db, effect)
            return []
        if isinstance(effect, CreditGoal):
            outcome = await self.goal_service.credit_income(
                db,
                worker_id=effect.worker_id,
                amount=effect.amount,
                job_id=effect.job_id,
            )
            return outcome.notifications(effect.job_id, effect.job_title) if outcome else []
        if isinstance(effect, NotifyMatchingWorkers):
            self.enqueue_matching(str(effect.job_id))
            return []
        raise TypeError(f"Unknown effect {type(effect).__name__}")
