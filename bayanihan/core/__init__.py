"""Core module exports."""
from bayanihan.core.config import settings, get_settings
from bayanihan.core.database import Base, get_db, init_db, close_db, engine, async_session_maker
from bayanihan.core.security import create_access_token, decode_token
from bayanihan.core.exceptions import (
    APIException,
    ValidationException,
    StateConflictException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    PaymentGatewayException,
    TokenExpiredException,
    InvalidTokenException,
    UserNotFoundException,
    JobNotFoundException,
    ApplicationNotFoundException,
    PaymentNotFoundException,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    "engine",
    "async_session_maker",
    # Security
    "create_access_token",
    "decode_token",
    # Exceptions
    "APIException",
    "ValidationException",
    "StateConflictException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "PaymentGatewayException",
    "TokenExpiredException",
    "InvalidTokenException",
    "UserNotFoundException",
    "JobNotFoundException",
    "ApplicationNotFoundException",
    "PaymentNotFoundException",
]
