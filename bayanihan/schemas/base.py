"""
Base schemas and common response models.
"""
from datetime import datetime
from typing import Any, Generic, TypeVar, Optional, List
from uuid import UUID
from pydantic import BaseModel, ConfigDict


# Generic type for wrapped responses
T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class TimestampSchema(BaseSchema):
    """Schema mixin for timestamps."""

    created_at: datetime
    updated_at: datetime


class IDSchema(BaseSchema):
    """Schema mixin for UUID ID."""

    id: UUID


class ApiResponse(BaseSchema, Generic[T]):
    """
    Success envelope: machine-readable `success`/`data` plus a
    human-readable `alert` for the client to show.
    """

    success: bool = True
    data: Optional[T] = None
    alert: Optional[str] = None


class PaginatedResponse(BaseSchema, Generic[T]):
    """Generic paginated response."""

    items: List[T]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, items: List[Any], total: int, page: int, limit: int) -> "PaginatedResponse":
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            pages=(total + limit - 1) // limit if total > 0 else 0,
        )


class ErrorResponse(BaseSchema):
    """Error envelope produced by the exception handlers."""

    success: bool = False
    error: str
    message: str
    alert: Optional[str] = None
    details: Optional[Any] = None
