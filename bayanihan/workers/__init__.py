"""
Workers package - Celery tasks and background processing.
"""
from bayanihan.workers.celery_app import celery_app
from bayanihan.workers.tasks import notify_matching_workers
from bayanihan.workers.scheduler import (
    reconcile_stuck_payments,
    reconcile_goal_credits,
)

__all__ = [
    "celery_app",
    "notify_matching_workers",
    "reconcile_stuck_payments",
    "reconcile_goal_credits",
]
