"""
Job service - orchestrates job reads and lifecycle transitions.

Every mutation follows the same order:
  1. load the job with a row lock
  2. run the pure transition (guards + in-memory change + effects)
  3. commit
  4. dispatch the effects (best-effort, after the commit)
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.core import storage
from bayanihan.core.config import settings
from bayanihan.core.exceptions import (
    ForbiddenException,
    JobNotFoundException,
    NotFoundException,
    UserNotFoundException,
)
from bayanihan.core.logging import get_logger
from bayanihan.models.enums import ApplicationStatus, UserRole
from bayanihan.models.job import Job
from bayanihan.repositories.job_repository import JobRepository
from bayanihan.repositories.notification_repository import NotificationRepository
from bayanihan.repositories.user_repository import UserRepository
from bayanihan.schemas.base import PaginatedResponse
from bayanihan.schemas.job import (
    InvitationItem,
    JobCreate,
    JobMatchResponse,
    JobPosted,
    JobResponse,
    JobSearchParams,
    JobUpdate,
    MyApplicationItem,
    ProofLink,
)
from bayanihan.schemas.notification import NotificationResponse
from bayanihan.services import lifecycle
from bayanihan.services.effects import EffectDispatcher
from bayanihan.services.lifecycle import Actor, Effect
from bayanihan.services.matching import find_matching_jobs
from bayanihan.services.notification_service import NotificationService

logger = get_logger(__name__)


class JobService:
    """Job queries, matching, and the lifecycle operations behind /jobs."""

    def __init__(
        self,
        dispatcher: Optional[EffectDispatcher] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.job_repo = JobRepository()
        self.user_repo = UserRepository()
        self.notification_repo = NotificationRepository()
        self.notification_service = notification_service or NotificationService()
        self.dispatcher = dispatcher or EffectDispatcher(notification_service=self.notification_service)

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_job(self, db: AsyncSession, job_id: UUID) -> JobResponse:
        """
        Raises:
            JobNotFoundException: missing or soft-deleted.
        """
        job = await self.job_repo.get_by_id(db, job_id)
        if not job:
            raise JobNotFoundException()
        return JobResponse.model_validate(job)

    async def list_jobs(
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
    ) -> PaginatedResponse[JobResponse]:
        jobs, total = await self.job_repo.find_with_filters(
            db,
            posted_by=posted_by,
            status=status,
            completed=completed,
            start_date=start_date,
            end_date=end_date,
            sort_by=sort_by,
            order=order,
            page=page,
            limit=limit,
        )
        return PaginatedResponse.build([JobResponse.model_validate(j) for j in jobs], total, page, limit)

    async def search(
        self,
        db: AsyncSession,
        params: JobSearchParams,
        *,
        sort_by: str = "date_posted",
        order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> PaginatedResponse[JobResponse]:
        jobs, total = await self.job_repo.search(
            db,
            keyword=params.keyword,
            skills=params.skills,
            barangay=params.barangay,
            min_price=params.min_price,
            max_price=params.max_price,
            sort_by=sort_by,
            order=order,
            page=page,
            limit=limit,
        )
        return PaginatedResponse.build([JobResponse.model_validate(j) for j in jobs], total, page, limit)

    async def popular(self, db: AsyncSession) -> List[JobResponse]:
        return [JobResponse.model_validate(j) for j in await self.job_repo.find_popular(db)]

    async def find_matches(
        self,
        db: AsyncSession,
        actor: Actor,
        limit: Optional[int] = None,
    ) -> List[JobMatchResponse]:
        """Rank open jobs for the calling worker."""
        worker = await self.user_repo.get_active_by_id(db, actor.id)
        if worker is None:
            raise UserNotFoundException()

        pool = await self.job_repo.find_open(db)
        matches = find_matching_jobs(
            worker,
            pool,
            limit or settings.match_default_limit,
            fallback_cap=settings.match_fallback_cap,
        )
        logger.info("jobs_matched", pool_size=len(pool), returned=len(matches))
        return [
            JobMatchResponse(
                job=JobResponse.model_validate(m.job),
                match_score=m.match_score,
                matching_skills=m.matching_skills,
                skill_match_percentage=m.skill_match_percentage,
                location_match=m.location_match,
                recency_days=m.recency_days,
                match_details=m.match_details,
            )
            for m in matches
        ]

    async def my_jobs(self, db: AsyncSession, actor: Actor) -> List[JobResponse]:
        return [JobResponse.model_validate(j) for j in await self.job_repo.find_by_poster(db, actor.id)]

    async def applications_received(self, db: AsyncSession, actor: Actor) -> List[JobResponse]:
        jobs = await self.job_repo.find_by_poster(db, actor.id, with_applicants_only=True)
        return [JobResponse.model_validate(j) for j in jobs]

    async def my_applications(self, db: AsyncSession, actor: Actor) -> List[MyApplicationItem]:
        items = []
        for job in await self.job_repo.find_applied_by(db, actor.id):
            application = job.find_application(actor.id)
            if application is None:
                continue
            items.append(MyApplicationItem(
                job=JobResponse.model_validate(job),
                application_status=application.status,
                applied_at=application.applied_at,
            ))
        return items

    async def my_invitations(self, db: AsyncSession, actor: Actor) -> List[InvitationItem]:
        pairs = await self.notification_service.list_invitations(db, actor.id)
        return [
            InvitationItem(
                invitation=NotificationResponse.model_validate(note),
                job=JobResponse.model_validate(job),
            )
            for note, job in pairs
        ]

    async def proof_link(self, db: AsyncSession, job_id: UUID, actor: Actor) -> ProofLink:
        """Download link for a completed job's proof (poster, worker or admin)."""
        job = await self.job_repo.get_by_id(db, job_id)
        if not job:
            raise JobNotFoundException()
        if actor.id not in (job.posted_by, job.assigned_to) and not actor.is_admin:
            raise ForbiddenException("Not authorized")
        if not job.payment_proof:
            raise NotFoundException("No payment proof for this job", code="PROOF_NOT_FOUND")
        return ProofLink(
            job_id=job.id,
            payment_proof=job.payment_proof,
            url=await storage.presign_proof_download(job.payment_proof),
        )

    # ── Transitions ──────────────────────────────────────────────────────────

    async def _transition(
        self,
        db: AsyncSession,
        job_id: UUID,
        transition: Callable[[Job], List[Effect]],
        *,
        event: str,
        **log_context: Any,
    ) -> JobResponse:
        job = await self.job_repo.get_by_id(db, job_id, for_update=True)
        if not job:
            raise JobNotFoundException()

        effects = transition(job)
        await db.commit()
        # Snapshot before effects run; a failed effect rolls the session back
        result = JobResponse.model_validate(job)
        logger.info(event, job_id=str(job_id), effects=len(effects), **log_context)

        await self.dispatcher.dispatch(db, effects)
        return result

    async def post_job(self, db: AsyncSession, actor: Actor, data: JobCreate) -> JobPosted:
        job, effects = lifecycle.post_job(
            actor,
            title=data.title,
            price=data.price,
            barangay=data.barangay,
            description=data.description,
            skills_required=data.skills_required,
            location=data.location,
        )
        await self.job_repo.add(db, job)
        await db.commit()
        result = JobResponse.model_validate(job)

        try:
            matches_found = len(await self.notification_service.find_matching_workers(db, job))
        except Exception as exc:
            # The job is committed; the alert task recomputes the matches
            await db.rollback()
            matches_found = 0
            logger.warning("job_match_count_failed", job_id=str(result.id), error=str(exc))
        logger.info("job_posted", job_id=str(result.id), barangay=result.barangay, matches_found=matches_found)

        await self.dispatcher.dispatch(db, effects)
        return JobPosted(job=result, matches_found=matches_found)

    async def notify_matching_workers(self, db: AsyncSession, job_id: UUID) -> Dict[str, Any]:
        """New-job alert fan-out; run from the Celery task."""
        job = await self.job_repo.get_by_id(db, job_id)
        if not job or not job.is_open:
            return {"error": "Job not found or closed"}

        workers = await self.notification_service.find_matching_workers(db, job)
        report = await self.dispatcher.dispatch(
            db, self.notification_service.job_match_effects(job, workers)
        )
        return {
            "matching_workers": len(workers),
            "delivered": report.delivered,
            "failed": len(report.failed),
        }

    async def apply(self, db: AsyncSession, job_id: UUID, actor: Actor) -> JobResponse:
        return await self._transition(
            db, job_id, lambda job: lifecycle.apply(job, actor), event="job_applied"
        )

    async def cancel_application(self, db: AsyncSession, job_id: UUID, actor: Actor) -> JobResponse:
        return await self._transition(
            db, job_id, lambda job: lifecycle.cancel_application(job, actor), event="application_cancelled"
        )

    async def invite(self, db: AsyncSession, job_id: UUID, actor: Actor, worker_id: UUID) -> JobResponse:
        invitee = await self.user_repo.get_active_by_id(db, worker_id)
        if invitee is None:
            raise UserNotFoundException()
        already_invited = (
            await self.notification_repo.find_invitation(db, job_id=job_id, invitee_id=worker_id)
        ) is not None

        return await self._transition(
            db,
            job_id,
            lambda job: lifecycle.invite(
                job,
                actor,
                invitee_id=invitee.id,
                invitee_role=UserRole(invitee.role),
                already_invited=already_invited,
            ),
            event="worker_invited",
            worker_id=str(worker_id),
        )

    async def accept_invitation(self, db: AsyncSession, job_id: UUID, actor: Actor) -> JobResponse:
        job = await self.job_repo.get_by_id(db, job_id, for_update=True)
        if not job:
            raise JobNotFoundException()

        effects = lifecycle.accept_invitation(job, actor)
        await self.notification_repo.mark_invitation_read(db, job_id=job_id, invitee_id=actor.id)
        await db.commit()
        result = JobResponse.model_validate(job)
        logger.info("invitation_accepted", job_id=str(job_id))

        await self.dispatcher.dispatch(db, effects)
        return result

    async def decline_invitation(self, db: AsyncSession, job_id: UUID, actor: Actor) -> int:
        """Mark the invitation read; the job's applicants are untouched."""
        updated = await self.notification_repo.mark_invitation_read(db, job_id=job_id, invitee_id=actor.id)
        await db.commit()
        logger.info("invitation_declined", job_id=str(job_id), updated=updated)
        return updated

    async def assign_worker(self, db: AsyncSession, job_id: UUID, actor: Actor, worker_id: UUID) -> JobResponse:
        return await self._transition(
            db,
            job_id,
            lambda job: lifecycle.assign_worker(job, actor, worker_id),
            event="worker_assigned",
            worker_id=str(worker_id),
        )

    async def reject_application(
        self, db: AsyncSession, job_id: UUID, actor: Actor, worker_id: UUID
    ) -> JobResponse:
        return await self._transition(
            db,
            job_id,
            lambda job: lifecycle.reject_application(job, actor, worker_id),
            event="application_rejected",
            worker_id=str(worker_id),
        )

    async def update_applicant_status(
        self,
        db: AsyncSession,
        job_id: UUID,
        actor: Actor,
        worker_id: UUID,
        status: ApplicationStatus,
    ) -> JobResponse:
        return await self._transition(
            db,
            job_id,
            lambda job: lifecycle.update_applicant_status(job, actor, worker_id, status),
            event="applicant_status_updated",
            worker_id=str(worker_id),
            status=status.value,
        )

    async def close_job(self, db: AsyncSession, job_id: UUID, actor: Actor) -> JobResponse:
        return await self._transition(
            db, job_id, lambda job: lifecycle.close_job(job, actor), event="job_closed"
        )

    async def edit_job(self, db: AsyncSession, job_id: UUID, actor: Actor, data: JobUpdate) -> JobResponse:
        changes = data.model_dump(exclude_unset=True)
        return await self._transition(
            db,
            job_id,
            lambda job: lifecycle.edit_job(job, actor, changes),
            event="job_edited",
            fields=sorted(changes),
        )

    async def complete_job(
        self,
        db: AsyncSession,
        job_id: UUID,
        actor: Actor,
        *,
        proof_url: Optional[str] = None,
        proof_filename: Optional[str] = None,
        proof_content: Optional[bytes] = None,
        proof_content_type: Optional[str] = None,
    ) -> JobResponse:
        """
        Manual settlement. An uploaded file is stored only after every other
        guard has passed; a proof URL may be given instead of a file.
        """
        job = await self.job_repo.get_by_id(db, job_id, for_update=True)
        if not job:
            raise JobNotFoundException()

        proof = proof_url
        if proof_content is not None:
            lifecycle.check_completable(job, actor)
            proof = await storage.upload_proof(
                str(job.id), proof_filename or "proof", proof_content, proof_content_type
            )

        effects = lifecycle.complete_job(job, actor, proof=proof)
        await db.commit()
        result = JobResponse.model_validate(job)
        logger.info("job_completed", job_id=str(job_id), path="manual")

        await self.dispatcher.dispatch(db, effects)
        return result

    async def delete_job(self, db: AsyncSession, job_id: UUID, actor: Actor) -> bool:
        """Idempotent soft delete. Returns True if this call tombstoned the job."""
        job = await self.job_repo.get_by_id(db, job_id, include_deleted=True, for_update=True)
        effects = lifecycle.delete_job(job, actor)
        if not effects:
            logger.info("job_delete_noop", job_id=str(job_id))
            return False

        await db.commit()
        logger.info("job_deleted", job_id=str(job_id))
        await self.dispatcher.dispatch(db, effects)
        return True

    # ── Admin ────────────────────────────────────────────────────────────────

    async def list_deleted(self, db: AsyncSession) -> List[JobResponse]:
        return [JobResponse.model_validate(j) for j in await self.job_repo.find_deleted(db)]

    async def restore_job(self, db: AsyncSession, job_id: UUID) -> JobResponse:
        job = await self.job_repo.get_by_id(db, job_id, include_deleted=True, for_update=True)
        if not job:
            raise JobNotFoundException()
        if job.is_deleted:
            await self.job_repo.restore(db, job)
            await db.commit()
            logger.info("job_restored", job_id=str(job_id))
        return JobResponse.model_validate(job)

    async def purge_job(self, db: AsyncSession, job_id: UUID) -> bool:
        """Permanently delete a job (admin). Missing jobs are a no-op."""
        removed = await self.job_repo.delete(db, job_id)
        await db.commit()
        logger.info("job_purged", job_id=str(job_id), removed=removed)
        return removed
