"""
Authentication endpoints: signup, login, token refresh and logout.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.common import StatusMessage
from app.schemas.user import AuthResponse, Token, UserCreate, UserLogin
from app.services.auth_service import authenticate_user, refresh_tokens, register_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new client or performer account and sign it in."""
    user, tokens = await register_user(db, user_data)
    return {"user": user, "tokens": tokens}


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive an access/refresh token pair."""
    user, tokens = await authenticate_user(db, login_data)
    return {"user": user, "tokens": tokens}


@router.post("/refresh", response_model=Token)
async def refresh(user: User = Depends(get_current_user)):
    return refresh_tokens(user)


@router.post("/logout", response_model=StatusMessage)
async def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards them
    return {"message": "Logged out successfully"}
