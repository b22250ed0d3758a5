"""
Admin routes - soft-delete recovery for jobs.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.api.deps import get_admin_actor, get_job_service
from bayanihan.core.database import get_db
from bayanihan.schemas.base import ApiResponse
from bayanihan.schemas.job import JobResponse
from bayanihan.services.job_service import JobService
from bayanihan.services.lifecycle import Actor

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/jobs/deleted", response_model=ApiResponse[List[JobResponse]])
async def list_deleted_jobs(
    admin: Actor = Depends(get_admin_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    jobs = await service.list_deleted(db)
    return ApiResponse(data=jobs, alert=f"{len(jobs)} deleted jobs")


@router.put("/jobs/{job_id}/restore", response_model=ApiResponse[JobResponse])
async def restore_job(
    job_id: UUID,
    admin: Actor = Depends(get_admin_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.restore_job(db, job_id), alert="Job restored")


@router.delete("/jobs/{job_id}/permanent", response_model=ApiResponse[None])
async def purge_job(
    job_id: UUID,
    admin: Actor = Depends(get_admin_actor),
    service: JobService = Depends(get_job_service),
    db: AsyncSession = Depends(get_db),
):
    removed = await service.purge_job(db, job_id)
    return ApiResponse(alert="Job permanently deleted" if removed else "Job not found")
