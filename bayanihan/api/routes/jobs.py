"""
Job routes.

Static paths (/search, /my-jobs, ...) are declared before /{job_id}.
"""
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.api.deps import get_actor, get_job_service
from bayanihan.core.database import get_db
from bayanihan.core.rate_limit import (
    RATE_APPLY,
    RATE_DEFAULT,
    RATE_INVITE,
    RATE_POST_JOB,
    limiter,
)
from bayanihan.models.enums import JobStatus
from bayanihan.schemas.base import ApiResponse, PaginatedResponse
from bayanihan.schemas.job import (
    ApplicantRef,
    ApplicantStatusUpdate,
    InvitationItem,
    InviteRequest,
    JobCreate,
    JobMatchResponse,
    JobPosted,
    JobResponse,
    JobSearchParams,
    JobUpdate,
    MyApplicationItem,
    ProofLink,
)
from bayanihan.services.job_service import JobService
from bayanihan.services.lifecycle import Actor

router = APIRouter(prefix="/jobs", tags=["jobs"])

SortField = Literal["date_posted", "price", "title"]
SortOrder = Literal["asc", "desc"]


@router.post("", response_model=ApiResponse[JobPosted], status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_POST_JOB)
async def post_job(
    request: Request,
    body: JobCreate,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    """Create a job. Matching workers are notified in the background."""
    posted = await service.post_job(db, actor, body)
    return ApiResponse(data=posted, alert=f"Job posted. {posted.matches_found} matching workers found")


@router.get("", response_model=ApiResponse[PaginatedResponse[JobResponse]])
async def list_jobs(
    posted_by: Optional[UUID] = Query(None),
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    completed: Optional[bool] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    sort_by: SortField = Query("date_posted"),
    order: SortOrder = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    page_data = await service.list_jobs(
        db,
        posted_by=posted_by,
        status=job_status.value if job_status else None,
        completed=completed,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=page_data, alert=f"{page_data.total} jobs found")


@router.get("/search", response_model=ApiResponse[PaginatedResponse[JobResponse]])
async def search_jobs(
    keyword: Optional[str] = Query(None),
    skill: Optional[str] = Query(None, description="Comma-separated skills, any match"),
    barangay: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: SortField = Query("date_posted"),
    order: SortOrder = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    params = JobSearchParams(
        keyword=keyword,
        skill=skill,
        barangay=barangay,
        min_price=min_price,
        max_price=max_price,
    )
    page_data = await service.search(db, params, sort_by=sort_by, order=order, page=page, limit=limit)
    return ApiResponse(data=page_data, alert=f"{page_data.total} jobs found")


@router.get("/popular", response_model=ApiResponse[List[JobResponse]])
async def popular_jobs(
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.popular(db))


@router.get("/my-matches", response_model=ApiResponse[List[JobMatchResponse]])
@limiter.limit(RATE_DEFAULT)
async def my_matches(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=50),
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    """Open jobs ranked for the caller by skills, barangay and recency."""
    matches = await service.find_matches(db, actor, limit)
    alert = f"Found {len(matches)} matching jobs" if matches else "No matching jobs found. Add skills to your profile"
    return ApiResponse(data=matches, alert=alert)


@router.get("/my-jobs", response_model=ApiResponse[List[JobResponse]])
async def my_jobs(
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.my_jobs(db, actor))


@router.get("/my-applications", response_model=ApiResponse[List[MyApplicationItem]])
async def my_applications(
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.my_applications(db, actor))


@router.get("/my-applications-received", response_model=ApiResponse[List[JobResponse]])
async def applications_received(
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.applications_received(db, actor))


@router.get("/my-invitations", response_model=ApiResponse[List[InvitationItem]])
async def my_invitations(
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.my_invitations(db, actor))


@router.get("/{job_id}", response_model=ApiResponse[JobResponse])
async def get_job(
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.get_job(db, job_id))


@router.put("/{job_id}", response_model=ApiResponse[JobResponse])
async def edit_job(
    job_id: UUID,
    body: JobUpdate,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.edit_job(db, job_id, actor, body)
    return ApiResponse(data=job, alert="Job updated")


@router.delete("/{job_id}", response_model=ApiResponse[None])
async def delete_job(
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete. Deleting a missing or already-deleted job still succeeds."""
    deleted = await service.delete_job(db, job_id, actor)
    return ApiResponse(alert="Job deleted" if deleted else "Job already deleted")


@router.post("/{job_id}/apply", response_model=ApiResponse[JobResponse])
@limiter.limit(RATE_APPLY)
async def apply_to_job(
    request: Request,
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.apply(db, job_id, actor)
    return ApiResponse(data=job, alert="Application sent")


@router.delete("/{job_id}/cancel-application", response_model=ApiResponse[JobResponse])
@limiter.limit(RATE_APPLY)
async def cancel_application(
    request: Request,
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.cancel_application(db, job_id, actor)
    return ApiResponse(data=job, alert="Application cancelled")


@router.post("/{job_id}/invite", response_model=ApiResponse[JobResponse])
@limiter.limit(RATE_INVITE)
async def invite_worker(
    request: Request,
    job_id: UUID,
    body: InviteRequest,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.invite(db, job_id, actor, body.worker_id)
    return ApiResponse(data=job, alert="Invitation sent")


@router.post("/{job_id}/accept-invitation", response_model=ApiResponse[JobResponse])
@limiter.limit(RATE_APPLY)
async def accept_invitation(
    request: Request,
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.accept_invitation(db, job_id, actor)
    return ApiResponse(data=job, alert="Invitation accepted. Your application was sent")


@router.post("/{job_id}/decline-invitation", response_model=ApiResponse[None])
@limiter.limit(RATE_APPLY)
async def decline_invitation(
    request: Request,
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    await service.decline_invitation(db, job_id, actor)
    return ApiResponse(alert="Invitation declined")


@router.post("/{job_id}/assign", response_model=ApiResponse[JobResponse])
async def assign_worker(
    job_id: UUID,
    body: ApplicantRef,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.assign_worker(db, job_id, actor, body.user_id)
    return ApiResponse(data=job, alert="Worker assigned")


@router.post("/{job_id}/reject", response_model=ApiResponse[JobResponse])
async def reject_application(
    job_id: UUID,
    body: ApplicantRef,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.reject_application(db, job_id, actor, body.user_id)
    return ApiResponse(data=job, alert="Application rejected")


@router.put("/{job_id}/applicants/{user_id}", response_model=ApiResponse[JobResponse])
async def update_applicant_status(
    job_id: UUID,
    user_id: UUID,
    body: ApplicantStatusUpdate,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.update_applicant_status(db, job_id, actor, user_id, body.status)
    return ApiResponse(data=job, alert=f"Applicant {body.status.value}")


@router.put("/{job_id}/close", response_model=ApiResponse[JobResponse])
async def close_job(
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    job = await service.close_job(db, job_id, actor)
    return ApiResponse(data=job, alert="Job closed")


@router.put("/{job_id}/complete", response_model=ApiResponse[JobResponse])
async def complete_job(
    job_id: UUID,
    payment_proof: Optional[UploadFile] = File(None, description="Proof of payment image"),
    payment_proof_url: Optional[str] = Form(None),
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    """Mark a job completed with proof of payment (manual settlement)."""
    kwargs = {"proof_url": payment_proof_url}
    if payment_proof is not None:
        kwargs.update(
            proof_filename=payment_proof.filename,
            proof_content=await payment_proof.read(),
            proof_content_type=payment_proof.content_type,
        )
    job = await service.complete_job(db, job_id, actor, **kwargs)
    return ApiResponse(data=job, alert="Job marked as completed")


@router.get("/{job_id}/proof", response_model=ApiResponse[ProofLink])
async def get_payment_proof(
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.proof_link(db, job_id, actor))
