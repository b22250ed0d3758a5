"""
JWT helpers for the identity gate.

Tokens are issued by the identity service; this API only verifies them.
`create_access_token` exists for tooling and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Any
from jose import ExpiredSignatureError, JWTError, jwt

from bayanihan.core.config import settings
from bayanihan.core.exceptions import InvalidTokenException, TokenExpiredException


def create_access_token(
    data: dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode in the token (must carry "sub")
        expires_delta: Custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        TokenExpiredException: If the token is past its expiry
        InvalidTokenException: If the signature, type or payload is wrong
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError:
        raise InvalidTokenException()

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidTokenException()
    return payload
