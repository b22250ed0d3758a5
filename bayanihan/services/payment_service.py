"""
Payment service - the settlement bridge between jobs and PayMongo.

Manual payments complete the job immediately. Gateway payments are
created pending and completed by a webhook (or by the reconciliation
task when a webhook never arrives). Both end in the same
lifecycle.finalize_completion call, which is a no-op for a job that is
already completed.
"""
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.core.config import settings
from bayanihan.core.exceptions import (
    ForbiddenException,
    JobNotFoundException,
    PaymentGatewayException,
    PaymentNotFoundException,
    StateConflictException,
)
from bayanihan.core.logging import get_logger
from bayanihan.core.paymongo import PayMongoClient, php_to_centavos
from bayanihan.models.base import utcnow
from bayanihan.models.enums import NotificationKind, PaymentMethod, PaymentStatus
from bayanihan.models.payment import Payment
from bayanihan.repositories.job_repository import JobRepository
from bayanihan.repositories.payment_repository import PaymentRepository
from bayanihan.schemas.payment import (
    FeeBreakdown,
    PaymentInitiated,
    PaymentInitiateRequest,
    PaymentResponse,
)
from bayanihan.services import lifecycle
from bayanihan.services.effects import EffectDispatcher
from bayanihan.services.lifecycle import Actor, CreditGoal, Effect, Notify

logger = get_logger(__name__)

CENTAVO = Decimal("0.01")


def calculate_fee_breakdown(price: Decimal, percentage: Optional[Decimal] = None) -> FeeBreakdown:
    """
    Employer pays price + fee; the worker is credited the job price.

    >>> calculate_fee_breakdown(Decimal("500")).total_amount
    Decimal('550.00')
    """
    pct = settings.platform_fee_percentage if percentage is None else Decimal(percentage)
    price = Decimal(price).quantize(CENTAVO, rounding=ROUND_HALF_UP)
    fee = (price * pct / Decimal(100)).quantize(CENTAVO, rounding=ROUND_HALF_UP)
    return FeeBreakdown(
        job_price=price,
        platform_fee=fee,
        total_amount=price + fee,
        worker_receives=price,
    )


def _resource(event: Dict[str, Any]) -> Dict[str, Any]:
    """PayMongo events wrap the affected resource in data.attributes.data."""
    return ((event.get("data") or {}).get("attributes") or {}).get("data") or {}


class PaymentService:
    def __init__(
        self,
        gateway: Optional[PayMongoClient] = None,
        dispatcher: Optional[EffectDispatcher] = None,
    ):
        self.gateway = gateway or PayMongoClient()
        self.dispatcher = dispatcher or EffectDispatcher()
        self.payment_repo = PaymentRepository()
        self.job_repo = JobRepository()

    # ── Initiation ───────────────────────────────────────────────────────────

    async def initiate(
        self,
        db: AsyncSession,
        actor: Actor,
        data: PaymentInitiateRequest,
    ) -> PaymentInitiated:
        """
        Create a payment for an assigned job.

        Raises:
            JobNotFoundException: job missing or deleted.
            ForbiddenException: caller is not the poster.
            StateConflictException: no worker, already completed, or an
                active payment already exists.
            PaymentGatewayException: PayMongo refused or timed out.
        """
        job = await self.job_repo.get_by_id(db, data.job_id, for_update=True)
        if not job:
            raise JobNotFoundException()
        if job.posted_by != actor.id:
            raise ForbiddenException("Only the job poster can pay for this job")
        if job.assigned_to is None:
            raise StateConflictException("No worker assigned", code="NO_WORKER_ASSIGNED")
        if job.completed:
            raise StateConflictException("Job already completed", code="JOB_COMPLETED")
        if await self.payment_repo.find_active_for_job(db, job.id):
            raise StateConflictException(
                "Payment already processed",
                code="PAYMENT_EXISTS",
                alert="This job already has a payment in progress",
            )

        breakdown = calculate_fee_breakdown(job.price)
        payment = await self.payment_repo.create(
            db,
            job_id=job.id,
            employer_id=actor.id,
            worker_id=job.assigned_to,
            amount=breakdown.total_amount,
            worker_amount=breakdown.worker_receives,
            platform_fee=breakdown.platform_fee,
            payment_method=data.payment_method.value,
            status=PaymentStatus.PENDING.value,
            description=f"Payment for job: {job.title}",
            receipt_image=data.receipt_image,
        )
        result = PaymentInitiated(payment=PaymentResponse.model_validate(payment), breakdown=breakdown)

        if data.payment_method == PaymentMethod.MANUAL:
            payment.status = PaymentStatus.SUCCEEDED.value
            payment.paid_at = utcnow()
            effects = lifecycle.finalize_completion(
                job,
                proof=payment.receipt_image or payment.proof_uri,
                credit_amount=payment.worker_amount,
            )
            effects += self._settlement_notices(payment, job.title)
            await db.commit()
            result.payment = PaymentResponse.model_validate(payment)
            logger.info("payment_settled", payment_id=str(payment.id), job_id=str(job.id), path="manual")
            await self.dispatcher.dispatch(db, effects)
            return result

        centavos = php_to_centavos(payment.amount)
        metadata = {"payment_id": str(payment.id), "job_id": str(job.id)}

        if data.payment_method.is_ewallet:
            source = await self.gateway.create_source(
                amount_centavos=centavos,
                source_type=data.payment_method.value,
                success_url=f"{settings.frontend_url}/payments/success?payment_id={payment.id}",
                failed_url=f"{settings.frontend_url}/payments/failed?payment_id={payment.id}",
                metadata=metadata,
            )
            payment.paymongo_source_id = source["data"]["id"]
            payment.paymongo_response = source
            result.source_id = payment.paymongo_source_id
            result.checkout_url = source["data"]["attributes"]["redirect"]["checkout_url"]
        else:
            intent = await self.gateway.create_payment_intent(
                amount_centavos=centavos,
                description=payment.description,
                metadata=metadata,
            )
            payment.paymongo_payment_intent_id = intent["data"]["id"]
            payment.paymongo_response = intent
            result.payment_intent_id = payment.paymongo_payment_intent_id
            result.client_key = intent["data"]["attributes"]["client_key"]
            result.public_key = settings.paymongo_public_key

        await db.commit()
        result.payment = PaymentResponse.model_validate(payment)
        logger.info(
            "payment_initiated",
            payment_id=str(payment.id),
            job_id=str(job.id),
            method=data.payment_method.value,
            amount=str(payment.amount),
        )
        return result

    # ── Settlement ───────────────────────────────────────────────────────────

    @staticmethod
    def _settlement_notices(payment: Payment, job_title: str) -> List[Effect]:
        return [
            Notify(
                payment.worker_id,
                NotificationKind.PAYMENT_RECEIVED,
                f'You received PHP {payment.worker_amount} for "{job_title}"',
                payment.job_id,
            ),
            Notify(
                payment.employer_id,
                NotificationKind.PAYMENT_CONFIRMED,
                f'Your payment of PHP {payment.amount} for "{job_title}" was confirmed',
                payment.job_id,
            ),
        ]

    async def _mark_succeeded(
        self,
        db: AsyncSession,
        payment: Payment,
        gateway_payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Settle a locked gateway payment; replays are no-ops."""
        if payment.status == PaymentStatus.SUCCEEDED.value:
            logger.info("payment_already_settled", payment_id=str(payment.id))
            return
        if payment.status in (PaymentStatus.CANCELLED.value, PaymentStatus.FAILED.value):
            # A newer attempt may own the job's active slot; needs a manual refund
            logger.warning("payment_settlement_ignored", payment_id=str(payment.id), status=payment.status)
            return

        payment.status = PaymentStatus.SUCCEEDED.value
        payment.paid_at = utcnow()
        if gateway_payload is not None:
            payment.paymongo_response = gateway_payload

        effects: List[Effect] = []
        job = await self.job_repo.get_by_id(db, payment.job_id, include_deleted=True, for_update=True)
        if job is not None:
            effects = lifecycle.finalize_completion(
                job,
                proof=payment.proof_uri,
                credit_amount=payment.worker_amount,
            )
            effects += self._settlement_notices(payment, job.title)
        await db.commit()
        logger.info("payment_settled", payment_id=str(payment.id), job_id=str(payment.job_id), path="gateway")
        await self.dispatcher.dispatch(db, effects)

    async def _mark_failed(self, db: AsyncSession, payment: Payment, reason: str) -> None:
        if payment.status in (PaymentStatus.SUCCEEDED.value, PaymentStatus.FAILED.value):
            return
        payment.status = PaymentStatus.FAILED.value
        payment.error_message = reason
        await db.commit()
        logger.warning("payment_failed", payment_id=str(payment.id), reason=reason)
        await self.dispatcher.dispatch(db, [
            Notify(
                payment.employer_id,
                NotificationKind.PAYMENT_FAILED,
                f"Your payment of PHP {payment.amount} failed: {reason}",
                payment.job_id,
            ),
        ])

    async def _charge_source(self, db: AsyncSession, payment: Payment, source_id: str) -> None:
        if payment.status != PaymentStatus.PENDING.value:
            return
        charged = await self.gateway.create_payment(
            source_id=source_id,
            amount_centavos=php_to_centavos(payment.amount),
            description=payment.description or f"Payment {payment.id}",
        )
        payment.paymongo_payment_id = charged["data"]["id"]
        payment.paymongo_response = charged
        payment.status = PaymentStatus.PROCESSING.value
        await db.commit()
        logger.info("payment_source_charged", payment_id=str(payment.id))

    async def handle_webhook(self, db: AsyncSession, event: Dict[str, Any]) -> None:
        """
        Apply one PayMongo event. Never raises: the gateway always gets
        an acknowledgement and missed work is picked up by reconciliation.
        """
        event_type = ((event.get("data") or {}).get("attributes") or {}).get("type")
        resource = _resource(event)
        resource_id = resource.get("id")
        attributes = resource.get("attributes") or {}
        logger.info("payment_webhook_received", event_type=event_type, resource_id=resource_id)

        try:
            if event_type == "source.chargeable":
                payment = await self.payment_repo.get_by_gateway_ref(db, source_id=resource_id)
                if payment:
                    await self._charge_source(db, payment, resource_id)
            elif event_type in ("payment.paid", "payment.failed"):
                payment = await self.payment_repo.get_by_gateway_ref(db, payment_id=resource_id)
                if payment is None:
                    payment = await self.payment_repo.get_by_gateway_ref(
                        db,
                        source_id=(attributes.get("source") or {}).get("id"),
                        intent_id=attributes.get("payment_intent_id"),
                    )
                if payment is None:
                    logger.warning("payment_webhook_unmatched", event_type=event_type, resource_id=resource_id)
                elif event_type == "payment.paid":
                    payment.paymongo_payment_id = payment.paymongo_payment_id or resource_id
                    await self._mark_succeeded(db, payment, resource)
                else:
                    await self._mark_failed(
                        db, payment, attributes.get("failed_message") or "Payment failed"
                    )
            else:
                logger.info("payment_webhook_ignored", event_type=event_type)
        except Exception as exc:
            await db.rollback()
            logger.error(
                "payment_webhook_error",
                event_type=event_type,
                resource_id=resource_id,
                error=str(exc),
                exc_info=True,
            )

    # ── Queries ──────────────────────────────────────────────────────────────

    async def get_status(self, db: AsyncSession, payment_id: UUID, actor: Actor) -> PaymentResponse:
        payment = await self.payment_repo.get_by_id(db, payment_id)
        if not payment:
            raise PaymentNotFoundException()
        if actor.id not in (payment.employer_id, payment.worker_id) and not actor.is_admin:
            raise ForbiddenException("Not authorized")
        return PaymentResponse.model_validate(payment)

    async def job_payments(self, db: AsyncSession, job_id: UUID, actor: Actor) -> List[PaymentResponse]:
        job = await self.job_repo.get_by_id(db, job_id, include_deleted=True)
        if not job:
            raise JobNotFoundException()
        if actor.id not in (job.posted_by, job.assigned_to) and not actor.is_admin:
            raise ForbiddenException("Not authorized")
        return [PaymentResponse.model_validate(p) for p in await self.payment_repo.find_for_job(db, job_id)]

    async def my_payments(self, db: AsyncSession, actor: Actor, direction: str = "all") -> List[PaymentResponse]:
        payments = await self.payment_repo.find_for_user(db, actor.id, direction=direction)
        return [PaymentResponse.model_validate(p) for p in payments]

    async def cancel(self, db: AsyncSession, payment_id: UUID, actor: Actor) -> PaymentResponse:
        payment = await self.payment_repo.get_by_id(db, payment_id, for_update=True)
        if not payment:
            raise PaymentNotFoundException()
        if payment.employer_id != actor.id:
            raise ForbiddenException("Only the employer can cancel this payment")
        if payment.status != PaymentStatus.PENDING.value:
            raise StateConflictException(
                f"Cannot cancel a {payment.status} payment", code="PAYMENT_NOT_PENDING"
            )
        payment.status = PaymentStatus.CANCELLED.value
        await db.commit()
        logger.info("payment_cancelled", payment_id=str(payment_id))
        return PaymentResponse.model_validate(payment)

    # ── Reconciliation ───────────────────────────────────────────────────────

    async def _poll(self, db: AsyncSession, payment: Payment) -> str:
        """Ask PayMongo for the current state and apply it. Returns the outcome."""
        if payment.paymongo_payment_intent_id:
            intent = await self.gateway.get_payment_intent(payment.paymongo_payment_intent_id)
            attributes = intent["data"]["attributes"]
            status = attributes.get("status")
            if status == "succeeded":
                await self._mark_succeeded(db, payment, intent)
                return "succeeded"
            error = attributes.get("last_payment_error")
            if status == "awaiting_payment_method" and error:
                message = error.get("failed_message") if isinstance(error, dict) else str(error)
                await self._mark_failed(db, payment, message or "Payment failed")
                return "failed"
            return "pending"

        charged = await self.gateway.get_payment(payment.paymongo_payment_id)
        attributes = charged["data"]["attributes"]
        status = attributes.get("status")
        if status == "paid":
            await self._mark_succeeded(db, payment, charged)
            return "succeeded"
        if status == "failed":
            await self._mark_failed(db, payment, attributes.get("failed_message") or "Payment failed")
            return "failed"
        return "pending"

    async def reconcile_stuck_payments(self, db: AsyncSession) -> Dict[str, int]:
        cutoff = utcnow() - timedelta(minutes=settings.stuck_payment_minutes)
        stuck = await self.payment_repo.find_stuck(db, created_before=cutoff)
        # Plain values only: a rollback below expires every loaded instance
        refs = [(p.id, p.paymongo_payment_id, p.paymongo_payment_intent_id) for p in stuck]
        stats = {"checked": len(refs), "succeeded": 0, "failed": 0, "pending": 0, "errors": 0}

        for payment_id, gateway_payment_id, intent_id in refs:
            try:
                payment = await self.payment_repo.get_by_gateway_ref(
                    db,
                    payment_id=gateway_payment_id,
                    intent_id=intent_id,
                )
                if payment is None:
                    continue
                stats[await self._poll(db, payment)] += 1
            except PaymentGatewayException as exc:
                await db.rollback()
                stats["errors"] += 1
                logger.warning("payment_reconcile_gateway_error", payment_id=str(payment_id), error=exc.message)
            except Exception as exc:
                await db.rollback()
                stats["errors"] += 1
                logger.error(
                    "payment_reconcile_failed",
                    payment_id=str(payment_id),
                    exc_type=type(exc).__name__,
                    error=str(exc),
                    exc_info=True,
                )

        logger.info("payments_reconciled", **stats)
        return stats

    async def reconcile_goal_credits(self, db: AsyncSession) -> Dict[str, int]:
        """Re-issue the goal credit for completed jobs that never received one."""
        cutoff = utcnow() - timedelta(minutes=settings.stuck_payment_minutes)
        jobs = await self.job_repo.find_completed_without_credit(db, completed_before=cutoff)

        effects: List[Effect] = []
        for job in jobs:
            amount = job.price
            for payment in await self.payment_repo.find_for_job(db, job.id):
                if payment.status == PaymentStatus.SUCCEEDED.value:
                    amount = payment.worker_amount
                    break
            effects.append(CreditGoal(worker_id=job.assigned_to, amount=amount, job_id=job.id, job_title=job.title))

        report = await self.dispatcher.dispatch(db, effects)
        stats = {"jobs": len(jobs), "credited": len(jobs) - len(report.failed)}
        logger.info("goal_credits_reconciled", **stats)
        return stats
