"""
Notification service - in-app notification records, SMS delivery and
new-job alerts for matching workers.

Everything here is best-effort from the job core's point of view: the
effect dispatcher calls these methods after the primary change has been
committed and only logs when they fail.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.core.logging import get_logger
from bayanihan.core.sms import SmsSender
from bayanihan.models.enums import NotificationKind
from bayanihan.models.job import Job
from bayanihan.models.notification import Notification
from bayanihan.models.user import User
from bayanihan.repositories.job_repository import JobRepository
from bayanihan.repositories.notification_repository import NotificationRepository
from bayanihan.repositories.user_repository import UserRepository
from bayanihan.services.lifecycle import Effect, Notify, SendSms
from bayanihan.services.matching import worker_matches_job

logger = get_logger(__name__)


class NotificationService:
    """
    Flow for a new job:
    1. Job committed by JobService
    2. Celery task calls notify_matching_workers
    3. Workers in the same barangay sharing a skill get an in-app
       notification, plus an SMS if they opted in
    """

    def __init__(self, sms: Optional[SmsSender] = None):
        self.job_repo = JobRepository()
        self.user_repo = UserRepository()
        self.notification_repo = NotificationRepository()
        self.sms = sms or SmsSender()

    async def create(self, db: AsyncSession, note: Notify) -> Notification:
        return await self.notification_repo.create(
            db,
            recipient_id=note.recipient_id,
            kind=note.kind.value,
            message=note.message,
            related_job_id=note.job_id,
        )

    async def send_sms(self, db: AsyncSession, sms: SendSms) -> bool:
        """Text the recipient if they opted in and have a number on file."""
        user = await self.user_repo.get_active_by_id(db, sms.recipient_id)
        if user is None or not user.sms_opt_in or not user.mobile_no:
            return False
        return await self.sms.send(user.mobile_no, sms.message)

    async def find_matching_workers(self, db: AsyncSession, job: Job) -> List[User]:
        """Workers in the job's barangay with at least one required skill (never the poster)."""
        candidates = await self.user_repo.find_workers_in_barangay(db, job.barangay)
        return [
            user for user in candidates
            if user.id != job.posted_by and worker_matches_job(user, job)
        ]

    def job_match_effects(self, job: Job, workers: List[User]) -> List[Effect]:
        effects: List[Effect] = []
        for user in workers:
            effects.append(Notify(
                user.id,
                NotificationKind.JOB_MATCH,
                f"New job in your area matching your skills: {job.title}",
                job.id,
            ))
            effects.append(SendSms(user.id, f"New job in {job.barangay}: {job.title}. Pay: PHP {job.price}"))
        return effects

    async def list_invitations(self, db: AsyncSession, user_id: UUID) -> List[tuple]:
        """
        Invitation notifications whose job still exists, is open and is not
        deleted, paired with the job.
        """
        invitations = await self.notification_repo.find_invitations_for(db, user_id)
        job_ids = [n.related_job_id for n in invitations if n.related_job_id]
        jobs = {job.id: job for job in await self.job_repo.find_by_ids(db, job_ids)}
        return [
            (note, jobs[note.related_job_id])
            for note in invitations
            if note.related_job_id in jobs and jobs[note.related_job_id].is_open
        ]
