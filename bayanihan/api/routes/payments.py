"""
Payment routes.

The webhook is unauthenticated and always acknowledged; processing
failures are logged and left to the reconciliation task.
"""
from typing import List, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.api.deps import get_actor, get_payment_service
from bayanihan.core.database import get_db
from bayanihan.core.logging import get_logger
from bayanihan.core.rate_limit import RATE_PAYMENT, limiter
from bayanihan.schemas.base import ApiResponse
from bayanihan.schemas.payment import (
    PaymentInitiated,
    PaymentInitiateRequest,
    PaymentResponse,
    WebhookAck,
)
from bayanihan.services.lifecycle import Actor
from bayanihan.services.payment_service import PaymentService

logger = get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/initiate", response_model=ApiResponse[PaymentInitiated], status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_PAYMENT)
async def initiate_payment(
    request: Request,
    body: PaymentInitiateRequest,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
):
    initiated = await service.initiate(db, actor, body)
    if initiated.checkout_url:
        alert = "Continue to the e-wallet checkout to finish paying"
    elif initiated.client_key:
        alert = "Enter your card details to finish paying"
    else:
        alert = "Payment recorded and job completed"
    return ApiResponse(data=initiated, alert=alert)


@router.post("/webhook", response_model=WebhookAck)
async def paymongo_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
):
    try:
        event = await request.json()
    except ValueError:
        logger.warning("payment_webhook_malformed")
        return WebhookAck()
    if isinstance(event, dict):
        await service.handle_webhook(db, event)
    return WebhookAck()


@router.get("/my-payments", response_model=ApiResponse[List[PaymentResponse]])
async def my_payments(
    direction: Literal["all", "sent", "received"] = Query("all", alias="type"),
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.my_payments(db, actor, direction))


@router.get("/job/{job_id}", response_model=ApiResponse[List[PaymentResponse]])
async def job_payments(
    job_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.job_payments(db, job_id, actor))


@router.get("/{payment_id}/status", response_model=ApiResponse[PaymentResponse])
async def payment_status(
    payment_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
):
    return ApiResponse(data=await service.get_status(db, payment_id, actor))


@router.post("/{payment_id}/cancel", response_model=ApiResponse[PaymentResponse])
async def cancel_payment(
    payment_id: UUID,
    actor: Actor = Depends(get_actor),
    service: PaymentService = Depends(get_payment_service),
    db: AsyncSession = Depends(get_db),
):
    payment = await service.cancel(db, payment_id, actor)
    return ApiResponse(data=payment, alert="Payment cancelled")
