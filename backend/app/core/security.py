"""
Password hashing and JWT helpers.

Tokens are signed with HS256 and carry issuer/audience claims so tokens
minted for another service are rejected. Refresh tokens share the same
payload but live longer and are tagged with `type: refresh`.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenExpiredError(Exception):
    pass


class InvalidTokenError(Exception):
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def validate_password_strength(password: str) -> list[str]:
    """Return a list of unmet password rules (empty when the password is acceptable)."""
    errors = []
    if len(password) < 8:
        errors.append("must be at least 8 characters")
    if not re.search(r"[a-z]", password):
        errors.append("must contain a lowercase letter")
    if not re.search(r"[A-Z]", password):
        errors.append("must contain an uppercase letter")
    if not re.search(r"\d", password):
        errors.append("must contain a number")
    return errors


def _create_token(data: dict[str, Any], expires_delta: timedelta, token_type: str) -> str:
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "iat": now,
        "exp": now + expires_delta,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        data,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        ACCESS_TOKEN_TYPE,
    )


def create_refresh_token(data: dict[str, Any]) -> str:
    return _create_token(data, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), REFRESH_TOKEN_TYPE)


def create_token_pair(user) -> dict[str, str]:
    payload = {"sub": str(user.id), "email": user.email, "user_type": user.user_type}
    return {
        "access_token": create_access_token(payload),
        "refresh_token": create_refresh_token(payload),
        "token_type": "bearer",
    }


def decode_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry, issuer and audience. Raises TokenExpiredError or InvalidTokenError."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Token expired") from e
    except JWTError as e:
        raise InvalidTokenError("Invalid token") from e
