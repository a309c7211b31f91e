"""
Authentication service handling user registration, login and token refresh.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import status

from app.core.exceptions import AppError
from app.core.logging import get_logger
from app.core.security import create_token_pair, hash_password, validate_password_strength, verify_password
from app.db.base import utcnow
from app.models.performer import Performer
from app.models.user import User, UserStatus
from app.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> tuple[User, dict[str, str]]:
    """
    Register a new user with hashed password and issue a token pair.
    Raises 400 on a weak password and 409 if the email already exists.
    """
    problems = validate_password_strength(user_data.password)
    if problems:
        raise AppError(
            status.HTTP_400_BAD_REQUEST,
            "Password " + ", ".join(problems),
            "WEAK_PASSWORD",
        )

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise AppError(status.HTTP_409_CONFLICT, "Email already registered", "USER_EXISTS")

    user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone=user_data.phone,
        user_type=user_data.user_type,
        status=UserStatus.ACTIVE,
        last_login=utcnow(),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, user_type=user.user_type)
    return user, create_token_pair(user)


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[User, dict[str, str]]:
    """
    Authenticate user and return the user with a fresh token pair.
    Raises 401 if credentials are invalid or the account is not active.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise AppError(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid email or password",
            "INVALID_CREDENTIALS",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != UserStatus.ACTIVE:
        logger.warning("login_failed", reason="inactive", user_id=user.id, status=user.status)
        raise AppError(status.HTTP_401_UNAUTHORIZED, "Account is not active", "ACCOUNT_INACTIVE")

    user.last_login = utcnow()
    await db.flush()

    logger.info("user_logged_in", user_id=user.id)
    return user, create_token_pair(user)


def refresh_tokens(user: User) -> dict[str, str]:
    logger.info("token_refreshed", user_id=user.id)
    return create_token_pair(user)


async def get_user_profile(db: AsyncSession, user: User) -> dict:
    result = await db.execute(select(Performer).where(Performer.user_id == user.id))
    performer = result.scalar_one_or_none()
    return {"user": user, "performer": performer}
