"""
Payment schemas.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from bayanihan.models.enums import PaymentMethod, PaymentStatus
from bayanihan.schemas.base import BaseSchema, IDSchema, TimestampSchema


class PaymentInitiateRequest(BaseSchema):
    job_id: UUID
    payment_method: PaymentMethod
    receipt_image: Optional[str] = None  # opaque URI, manual method only


class FeeBreakdown(BaseSchema):
    job_price: Decimal
    platform_fee: Decimal
    total_amount: Decimal
    worker_receives: Decimal


class PaymentResponse(IDSchema, TimestampSchema):
    job_id: UUID
    employer_id: UUID
    worker_id: UUID
    amount: Decimal
    worker_amount: Decimal
    platform_fee: Decimal
    payment_method: PaymentMethod
    status: PaymentStatus
    description: Optional[str] = None
    receipt_image: Optional[str] = None
    paymongo_source_id: Optional[str] = None
    paymongo_payment_intent_id: Optional[str] = None
    paymongo_payment_id: Optional[str] = None
    error_message: Optional[str] = None
    paid_at: Optional[datetime] = None


class PaymentInitiated(BaseSchema):
    """Result of POST /payments/initiate; gateway fields depend on the method."""

    payment: PaymentResponse
    breakdown: FeeBreakdown
    checkout_url: Optional[str] = None
    source_id: Optional[str] = None
    client_key: Optional[str] = None
    payment_intent_id: Optional[str] = None
    public_key: Optional[str] = None  # card flow: attaches the payment method client-side


class WebhookAck(BaseSchema):
    received: bool = True
