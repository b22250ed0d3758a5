"""
API dependencies for dependency injection.
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from bayanihan.core.database import get_db
from bayanihan.core.security import decode_token
from bayanihan.core.exceptions import (
    UnauthorizedException,
    InvalidTokenException,
    ForbiddenException,
)
from bayanihan.core.logging import bind_actor
from bayanihan.models.enums import UserRole
from bayanihan.models.user import User
from bayanihan.repositories.user_repository import UserRepository
from bayanihan.services.job_service import JobService
from bayanihan.services.lifecycle import Actor
from bayanihan.services.payment_service import PaymentService


# Security scheme
security = HTTPBearer(auto_error=False)

_user_repo = UserRepository()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get the current authenticated user.

    Raises:
        UnauthorizedException: If no token provided
        InvalidTokenException: If token is invalid or the user is inactive
        TokenExpiredException: If token has expired
    """
    if not credentials:
        raise UnauthorizedException("Authentication required")

    payload = decode_token(credentials.credentials)
    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise InvalidTokenException()

    user = await _user_repo.get_active_by_id(db, user_id)
    if not user:
        raise InvalidTokenException()
    return user


async def get_actor(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> Actor:
    """
    Resolve the caller into the identity the lifecycle rules work with.
    Also keys rate limits and log lines to this actor.
    """
    actor = Actor(
        id=current_user.id,
        role=UserRole(current_user.role),
        verified=current_user.is_verified,
        name=current_user.display_name,
    )
    request.state.actor = actor
    bind_actor(actor.id, actor.role.value)
    return actor


async def get_admin_actor(actor: Actor = Depends(get_actor)) -> Actor:
    """
    Raises:
        ForbiddenException: If the caller is not an admin
    """
    if not actor.is_admin:
        raise ForbiddenException("Admin access required")
    return actor


def get_job_service() -> JobService:
    return JobService()


def get_payment_service() -> PaymentService:
    return PaymentService()
