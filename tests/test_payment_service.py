from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from bayanihan.core.exceptions import ForbiddenException, PaymentGatewayException, StateConflictException
from bayanihan.models.base import utcnow
from bayanihan.models.enums import NotificationKind, PaymentMethod, PaymentStatus
from bayanihan.models.payment import Payment
from bayanihan.schemas.payment import PaymentInitiateRequest
from bayanihan.services import lifecycle
from bayanihan.services.lifecycle import CreditGoal, Notify
from bayanihan.services.payment_service import PaymentService, calculate_fee_breakdown


def build_payment(**fields) -> Payment:
    now = utcnow()
    fields.setdefault("status", PaymentStatus.PENDING.value)
    return Payment(id=uuid4(), created_at=now, updated_at=now, **fields)


def paid_event(resource_id, event_type="payment.paid", **attributes):
    return {"data": {"attributes": {"type": event_type, "data": {"id": resource_id, "attributes": attributes}}}}


@pytest.fixture
def assigned_job(make_job, employer, worker):
    job = make_job(price=Decimal("1000.00"))
    lifecycle.apply(job, worker)
    lifecycle.assign_worker(job, employer, worker.id)
    return job


@pytest.fixture
def service(assigned_job):
    svc = PaymentService(gateway=AsyncMock(), dispatcher=AsyncMock())
    svc.job_repo = AsyncMock()
    svc.job_repo.get_by_id.return_value = assigned_job
    svc.payment_repo = AsyncMock()
    svc.payment_repo.find_active_for_job.return_value = None
    svc.payment_repo.create.side_effect = lambda db, **fields: build_payment(**fields)
    return svc


def dispatched_effects(service):
    return [effect for call in service.dispatcher.dispatch.await_args_list for effect in call.args[1]]


class TestFeeBreakdown:
    def test_ten_percent(self):
        breakdown = calculate_fee_breakdown(Decimal("500"), Decimal("10"))
        assert breakdown.platform_fee == Decimal("50.00")
        assert breakdown.total_amount == Decimal("550.00")
        assert breakdown.worker_receives == Decimal("500.00")

    def test_rounds_half_up_to_centavos(self):
        assert calculate_fee_breakdown(Decimal("333.35"), Decimal("10")).platform_fee == Decimal("33.34")
        assert calculate_fee_breakdown(Decimal("0.05"), Decimal("10")).platform_fee == Decimal("0.01")

    def test_zero_fee(self):
        breakdown = calculate_fee_breakdown(Decimal("250"), Decimal("0"))
        assert breakdown.total_amount == breakdown.worker_receives == Decimal("250.00")


class TestInitiate:
    async def test_manual_payment_completes_job(self, service, db, employer, worker, assigned_job):
        request = PaymentInitiateRequest(
            job_id=assigned_job.id, payment_method=PaymentMethod.MANUAL, receipt_image="s3://b/receipt.jpg"
        )

        result = await service.initiate(db, employer, request)

        assert result.payment.status == PaymentStatus.SUCCEEDED
        assert result.payment.amount == Decimal("1100.00")
        assert assigned_job.completed is True
        assert assigned_job.payment_proof == "s3://b/receipt.jpg"
        credits = [e for e in dispatched_effects(service) if isinstance(e, CreditGoal)]
        assert credits == [CreditGoal(worker.id, Decimal("1000.00"), assigned_job.id, assigned_job.title)]
        service.gateway.create_source.assert_not_awaited()

    async def test_manual_without_receipt_uses_payment_reference(self, service, db, employer, assigned_job):
        request = PaymentInitiateRequest(job_id=assigned_job.id, payment_method=PaymentMethod.MANUAL)
        result = await service.initiate(db, employer, request)
        assert assigned_job.payment_proof == f"payment://{result.payment.id}"

    async def test_gcash_creates_source(self, service, db, employer, assigned_job):
        service.gateway.create_source.return_value = {
            "data": {"id": "src_123", "attributes": {"redirect": {"checkout_url": "https://pay.example/src_123"}}}
        }
        request = PaymentInitiateRequest(job_id=assigned_job.id, payment_method=PaymentMethod.GCASH)

        result = await service.initiate(db, employer, request)

        assert result.checkout_url == "https://pay.example/src_123"
        assert result.payment.status == PaymentStatus.PENDING
        assert result.payment.paymongo_source_id == "src_123"
        kwargs = service.gateway.create_source.await_args.kwargs
        assert kwargs["amount_centavos"] == 110000
        assert kwargs["source_type"] == "gcash"
        assert assigned_job.completed is False
        service.dispatcher.dispatch.assert_not_awaited()

    async def test_card_creates_intent(self, service, db, employer, assigned_job):
        service.gateway.create_payment_intent.return_value = {
            "data": {"id": "pi_1", "attributes": {"client_key": "pi_1_client_abc"}}
        }
        request = PaymentInitiateRequest(job_id=assigned_job.id, payment_method=PaymentMethod.CARD)

        result = await service.initiate(db, employer, request)

        assert result.client_key == "pi_1_client_abc"
        assert result.payment_intent_id == "pi_1"

    async def test_second_active_payment_is_refused(self, service, db, employer, assigned_job):
        service.payment_repo.find_active_for_job.return_value = build_payment()
        request = PaymentInitiateRequest(job_id=assigned_job.id, payment_method=PaymentMethod.MANUAL)

        with pytest.raises(StateConflictException, match="Payment already processed"):
            await service.initiate(db, employer, request)
        service.payment_repo.create.assert_not_awaited()

    async def test_only_poster_pays(self, service, db, worker, assigned_job):
        request = PaymentInitiateRequest(job_id=assigned_job.id, payment_method=PaymentMethod.MANUAL)
        with pytest.raises(ForbiddenException):
            await service.initiate(db, worker, request)

    async def test_unassigned_job_cannot_be_paid(self, service, db, employer, make_job):
        service.job_repo.get_by_id.return_value = make_job()
        request = PaymentInitiateRequest(job_id=uuid4(), payment_method=PaymentMethod.CARD)
        with pytest.raises(StateConflictException, match="No worker assigned"):
            await service.initiate(db, employer, request)


class TestWebhook:
    @pytest.fixture
    def processing_payment(self, employer, worker, assigned_job):
        return build_payment(
            job_id=assigned_job.id,
            employer_id=employer.id,
            worker_id=worker.id,
            amount=Decimal("1100.00"),
            worker_amount=Decimal("1000.00"),
            platform_fee=Decimal("100.00"),
            payment_method=PaymentMethod.GCASH.value,
            status=PaymentStatus.PROCESSING.value,
            paymongo_source_id="src_1",
            paymongo_payment_id="pay_1",
        )

    async def test_duplicate_paid_event_credits_once(self, service, db, processing_payment, assigned_job, worker):
        service.payment_repo.get_by_gateway_ref.return_value = processing_payment

        await service.handle_webhook(db, paid_event("pay_1"))
        await service.handle_webhook(db, paid_event("pay_1"))

        assert processing_payment.status == PaymentStatus.SUCCEEDED.value
        assert assigned_job.completed is True
        assert assigned_job.payment_proof == f"payment://{processing_payment.id}"
        credits = [e for e in dispatched_effects(service) if isinstance(e, CreditGoal)]
        assert credits == [CreditGoal(worker.id, Decimal("1000.00"), assigned_job.id, assigned_job.title)]

    async def test_paid_event_after_manual_completion_does_not_recredit(
        self, service, db, processing_payment, assigned_job, employer
    ):
        lifecycle.complete_job(assigned_job, employer, proof="s3://b/manual.jpg")
        service.payment_repo.get_by_gateway_ref.return_value = processing_payment

        await service.handle_webhook(db, paid_event("pay_1"))

        assert processing_payment.status == PaymentStatus.SUCCEEDED.value
        assert assigned_job.payment_proof == "s3://b/manual.jpg"
        assert not any(isinstance(e, CreditGoal) for e in dispatched_effects(service))

    async def test_late_paid_event_does_not_revive_cancelled_payment(
        self, service, db, processing_payment, assigned_job
    ):
        processing_payment.status = PaymentStatus.CANCELLED.value
        service.payment_repo.get_by_gateway_ref.return_value = processing_payment

        await service.handle_webhook(db, paid_event("pay_1"))

        assert processing_payment.status == PaymentStatus.CANCELLED.value
        assert assigned_job.completed is False
        db.commit.assert_not_awaited()
        service.dispatcher.dispatch.assert_not_awaited()

    async def test_chargeable_source_is_charged(self, service, db, processing_payment):
        processing_payment.status = PaymentStatus.PENDING.value
        processing_payment.paymongo_payment_id = None
        service.payment_repo.get_by_gateway_ref.return_value = processing_payment
        service.gateway.create_payment.return_value = {"data": {"id": "pay_9", "attributes": {}}}

        await service.handle_webhook(db, paid_event("src_1", event_type="source.chargeable"))

        assert processing_payment.status == PaymentStatus.PROCESSING.value
        assert processing_payment.paymongo_payment_id == "pay_9"
        assert service.gateway.create_payment.await_args.kwargs["amount_centavos"] == 110000

    async def test_failed_event_notifies_employer(self, service, db, processing_payment, employer):
        service.payment_repo.get_by_gateway_ref.return_value = processing_payment

        await service.handle_webhook(db, paid_event("pay_1", event_type="payment.failed", failed_message="Card declined"))

        assert processing_payment.status == PaymentStatus.FAILED.value
        assert processing_payment.error_message == "Card declined"
        notes = [e for e in dispatched_effects(service) if isinstance(e, Notify)]
        assert [(n.recipient_id, n.kind) for n in notes] == [(employer.id, NotificationKind.PAYMENT_FAILED)]

    async def test_processing_errors_are_swallowed(self, service, db):
        service.payment_repo.get_by_gateway_ref.side_effect = RuntimeError("db down")

        await service.handle_webhook(db, paid_event("pay_1"))

        db.rollback.assert_awaited_once()

    async def test_unknown_event_is_ignored(self, service, db):
        await service.handle_webhook(db, {"data": {"attributes": {"type": "checkout_session.payment.paid"}}})
        service.payment_repo.get_by_gateway_ref.assert_not_awaited()


class TestCancelAndReconcile:
    async def test_only_pending_can_be_cancelled(self, service, db, employer):
        payment = build_payment(employer_id=employer.id, status=PaymentStatus.SUCCEEDED.value)
        service.payment_repo.get_by_id.return_value = payment
        with pytest.raises(StateConflictException):
            await service.cancel(db, payment.id, employer)

    async def test_stuck_intent_is_settled(self, service, db, employer, worker, assigned_job):
        payment = build_payment(
            job_id=assigned_job.id,
            employer_id=employer.id,
            worker_id=worker.id,
            amount=Decimal("1100.00"),
            worker_amount=Decimal("1000.00"),
            platform_fee=Decimal("100.00"),
            payment_method=PaymentMethod.CARD.value,
            paymongo_payment_intent_id="pi_7",
        )
        service.payment_repo.find_stuck.return_value = [payment]
        service.payment_repo.get_by_gateway_ref.return_value = payment
        service.gateway.get_payment_intent.return_value = {"data": {"id": "pi_7", "attributes": {"status": "succeeded"}}}

        stats = await service.reconcile_stuck_payments(db)

        assert stats["succeeded"] == 1
        assert payment.status == PaymentStatus.SUCCEEDED.value
        assert assigned_job.completed is True

    async def test_missing_goal_credit_is_reissued_with_worker_amount(self, service, db, assigned_job, employer, worker):
        lifecycle.complete_job(assigned_job, employer, proof="payment://x")
        service.job_repo.find_completed_without_credit.return_value = [assigned_job]
        service.payment_repo.find_for_job.return_value = [
            build_payment(status=PaymentStatus.SUCCEEDED.value, worker_amount=Decimal("950.00"))
        ]
        service.dispatcher.dispatch.return_value.failed = []

        stats = await service.reconcile_goal_credits(db)

        assert stats == {"jobs": 1, "credited": 1}
        assert dispatched_effects(service) == [
            CreditGoal(worker.id, Decimal("950.00"), assigned_job.id, assigned_job.title)
        ]


class TestReconcileWithSession:
    """Runs on a real session: a rollback expires loaded payments."""

    @pytest.fixture
    async def stuck_payments(self, session):
        created = utcnow() - timedelta(hours=1)
        rows = []
        for n in (1, 2):
            payment = Payment(
                job_id=uuid4(),
                employer_id=uuid4(),
                worker_id=uuid4(),
                amount=Decimal("1100.00"),
                worker_amount=Decimal("1000.00"),
                platform_fee=Decimal("100.00"),
                payment_method=PaymentMethod.CARD.value,
                status=PaymentStatus.PENDING.value,
                paymongo_payment_intent_id=f"pi_{n}",
            )
            payment.created_at = created + timedelta(minutes=n)
            rows.append(payment)
        session.add_all(rows)
        await session.commit()
        return rows

    @pytest.mark.parametrize("error", [
        PaymentGatewayException("Payment gateway timed out", retry=True),
        RuntimeError("unexpected payload"),
    ])
    async def test_one_failure_does_not_end_the_sweep(self, session, stuck_payments, error):
        service = PaymentService(gateway=AsyncMock(), dispatcher=AsyncMock())

        async def get_payment_intent(intent_id):
            if intent_id == "pi_1":
                raise error
            return {"data": {"id": intent_id, "attributes": {"status": "awaiting_next_action"}}}

        service.gateway.get_payment_intent.side_effect = get_payment_intent

        stats = await service.reconcile_stuck_payments(session)

        assert stats == {"checked": 2, "succeeded": 0, "failed": 0, "pending": 1, "errors": 1}
        polled = [c.args[0] for c in service.gateway.get_payment_intent.await_args_list]
        assert polled == ["pi_1", "pi_2"]
