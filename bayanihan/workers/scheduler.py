"""
Celery Beat scheduler configuration.

Defines periodic tasks that run on a schedule:
- Reconcile gateway payments stuck in pending/processing every 5 minutes
- Re-issue goal credits missing for completed jobs every 5 minutes

Webhooks are acknowledged even when processing fails, so these sweeps
are what eventually settles a payment whose callback was lost.
"""
from celery.schedules import crontab

from bayanihan.workers.celery_app import celery_app
from bayanihan.workers.tasks import run_async
from bayanihan.core.database import async_session_maker


# ─── Periodic Task Schedule ────────────────────────────────────

celery_app.conf.beat_schedule = {
    "reconcile-stuck-payments": {
        "task": "bayanihan.workers.scheduler.reconcile_stuck_payments",
        "schedule": crontab(minute="*/5"),
    },
    "reconcile-goal-credits": {
        "task": "bayanihan.workers.scheduler.reconcile_goal_credits",
        "schedule": crontab(minute="*/5"),
    },
}


# ─── Scheduled Tasks ──────────────────────────────────────────

@celery_app.task
def reconcile_stuck_payments():
    """Poll PayMongo for payments whose webhook never arrived."""
    return run_async(_reconcile_stuck_payments())


async def _reconcile_stuck_payments():
    from bayanihan.services.payment_service import PaymentService

    async with async_session_maker() as db:
        return await PaymentService().reconcile_stuck_payments(db)


@celery_app.task
def reconcile_goal_credits():
    """Credit completed jobs whose goal credit was lost after commit."""
    return run_async(_reconcile_goal_credits())


async def _reconcile_goal_credits():
    from bayanihan.services.payment_service import PaymentService

    async with async_session_maker() as db:
        return await PaymentService().reconcile_goal_credits(db)
