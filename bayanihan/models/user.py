"""
User model - the worker/employer profile the job core reads.

Registration, passwords and profile editing belong to the identity
service; this table mirrors the fields the marketplace needs.
"""
from typing import List, Optional
from sqlalchemy import String, Boolean
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bayanihan.models.base import BaseModel
from bayanihan.models.enums import UserRole


class User(BaseModel):
    """
    Marketplace participant.

    `skills` and `barangay` feed the matching engine; `mobile_no` and
    `sms_opt_in` gate the SMS channel.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mobile_no: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.EMPLOYEE.value,
        index=True,
    )  # 'employee', 'employer', 'both', 'admin'
    barangay: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    skills: Mapped[List[str]] = mapped_column(JSONB, default=list, nullable=False)

    # Status
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Notification preferences
    sms_opt_in: Mapped[bool] = mapped_column(Boolean, default=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@")[0]

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
