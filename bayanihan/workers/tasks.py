"""
Celery tasks for background processing.

ARCHITECTURE RULE: Same as routes, tasks are thin entry points.
They do exactly 3 things:
  1. Create a DB session (since we're outside FastAPI's request cycle)
  2. Call a service method
  3. Return the result
"""
import asyncio

from bayanihan.workers.celery_app import celery_app
from bayanihan.core.database import async_session_maker
from bayanihan.core.logging import get_logger

logger = get_logger(__name__)


def run_async(coro):
    """
    Helper to run async code in sync Celery tasks.

    Celery workers are synchronous. Our services are async (because
    SQLAlchemy async requires it). This bridge creates an event loop,
    runs the coroutine, and cleans up.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(bind=True, max_retries=3)
def notify_matching_workers(self, job_id: str):
    """
    Alert workers whose skills match a newly posted job.

    Runs right after the job is committed; the poster's request has
    already returned.
    """
    return run_async(_notify_matching_workers(job_id))


async def _notify_matching_workers(job_id: str):
    """Async implementation - delegates to JobService."""
    from uuid import UUID
    from bayanihan.services.job_service import JobService

    async with async_session_maker() as db:
        result = await JobService().notify_matching_workers(db, UUID(job_id))
        logger.info("matching_workers_notified", job_id=job_id, **result)
        return result
