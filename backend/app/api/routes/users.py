"""
Current-user profile.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import CurrentUserResponse, PerformerSummary, UserResponse
from app.services.auth_service import get_user_profile

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=CurrentUserResponse)
async def read_me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    profile = await get_user_profile(db, user)
    performer = profile["performer"]
    return CurrentUserResponse(
        **UserResponse.model_validate(user).model_dump(),
        performer=PerformerSummary.model_validate(performer) if performer else None,
    )
