"""
Payment model - one settlement attempt for a job.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bayanihan.models.base import BaseModel
from bayanihan.models.enums import PaymentStatus


class Payment(BaseModel):
    """
    Settlement record owned by the payment bridge.

    amount = job price + platform fee (what the employer is charged);
    worker_amount is what gets credited to the worker's goal.
    The partial unique index allows a single pending/processing/succeeded
    payment per job; failed and cancelled attempts accumulate freely.
    """

    __tablename__ = "payments"

    __table_args__ = (
        Index(
            "uq_payments_active_per_job",
            "job_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'processing', 'succeeded')"),
            sqlite_where=text("status IN ('pending', 'processing', 'succeeded')"),
        ),
    )

    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    worker_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    worker_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    payment_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )  # 'gcash', 'paymaya', 'grab_pay', 'card', 'manual'
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
        index=True,
    )  # 'pending', 'processing', 'succeeded', 'failed', 'cancelled'
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    receipt_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Gateway references
    paymongo_source_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    paymongo_payment_intent_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    paymongo_payment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    paymongo_response: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def proof_uri(self) -> str:
        """Proof stored on the job when this payment settles it."""
        return f"payment://{self.id}"

    def __repr__(self) -> str:
        return f"<Payment {self.id} job={self.job_id} {self.status}>"
