"""
FastAPI auth dependencies.

    user: User = Depends(get_current_user)
    admin: User = Depends(require_roles(UserType.ADMIN))
"""

from typing import Optional

from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError
from app.core.logging import get_logger
from app.core.security import ACCESS_TOKEN_TYPE, InvalidTokenError, TokenExpiredError, decode_token
from app.db.session import get_db
from app.models.user import User, UserStatus

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

_AUTH_HEADERS = {"WWW-Authenticate": "Bearer"}


def _unauthorized(detail: str, code: str) -> AppError:
    return AppError(status.HTTP_401_UNAUTHORIZED, detail, code, headers=_AUTH_HEADERS)


async def _user_from_token(db: AsyncSession, token: str) -> User:
    try:
        payload = decode_token(token)
    except TokenExpiredError:
        raise _unauthorized("Token has expired", "TOKEN_EXPIRED")
    except InvalidTokenError:
        raise _unauthorized("Invalid token", "INVALID_TOKEN")

    if payload.get("type", ACCESS_TOKEN_TYPE) != ACCESS_TOKEN_TYPE:
        raise _unauthorized("Invalid token", "INVALID_TOKEN")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token", "INVALID_TOKEN")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _unauthorized("User not found", "USER_NOT_FOUND")
    if user.status != UserStatus.ACTIVE:
        raise _unauthorized("Account is not active", "ACCOUNT_INACTIVE")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Access token is required", "MISSING_TOKEN")
    return await _user_from_token(db, credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the caller when a valid token is sent, otherwise None."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await _user_from_token(db, credentials.credentials)
    except AppError as e:
        logger.debug("optional_auth_ignored", code=e.code)
        return None


def require_roles(*user_types: str):
    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.user_type not in user_types:
            logger.warning(
                "insufficient_permissions",
                user_id=user.id,
                user_type=user.user_type,
                required=list(user_types),
            )
            raise AppError(
                status.HTTP_403_FORBIDDEN,
                "Insufficient permissions",
                "INSUFFICIENT_PERMISSIONS",
            )
        return user

    return checker
