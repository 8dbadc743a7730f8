import time

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import settings
from app.core.db.base import get_session
from app.core.db.schemas.auth import User
from app.core.db.schemas.user_profile import UserProfile
from app.core.logging import get_logger
from app.modules.auth import current_active_user
from app.modules.flashcards.errors import ClientError
from .schemas import UserProfileUpdate, UserProfileRead, UsernameAvailability


router = APIRouter()

logger = get_logger(__name__)


async def username_taken(session: AsyncSession, username: str, *, exclude_user_id: int | None = None) -> bool:
    query = select(UserProfile.id).where(UserProfile.username == username)
    if exclude_user_id is not None:
        query = query.where(UserProfile.user_id != exclude_user_id)
    result = await session.execute(query)
    return result.first() is not None


async def get_or_create_profile(session: AsyncSession, user: User) -> UserProfile:
    """Get existing profile or create the missing one from the account e-mail"""
    result = await session.execute(
        select(UserProfile).where(UserProfile.user_id == user.id)
    )
    profile = result.scalar_one_or_none()

    if not profile:
        email = str(user.email)
        base = email.split("@")[0] or "user"
        profile = UserProfile(
            user_id=user.id,
            username=f"{base}_{int(time.time() * 1000)}",
            email=email,
        )
        session.add(profile)
        await session.commit()
        await session.refresh(profile)
        logger.info(f"Created missing profile for user {user.id}")

    return profile


@router.get(
    f"/{settings.app.version}/profile",
    response_model=UserProfileRead,
    tags=["user_profile"],
)
async def get_profile(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    """Get user profile, auto-create if doesn't exist"""
    profile = await get_or_create_profile(session, current_user)
    return UserProfileRead.model_validate(profile)


@router.put(
    f"/{settings.app.version}/profile",
    response_model=UserProfileRead,
    tags=["user_profile"],
)
async def update_profile(
    profile_data: UserProfileUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(current_active_user),
):
    """Update user profile, auto-create if doesn't exist"""
    profile = await get_or_create_profile(session, current_user)

    update_data = profile_data.model_dump(exclude_unset=True)
    username = update_data.get("username")
    if username and await username_taken(session, username, exclude_user_id=current_user.id):
        raise ClientError("Username is already taken")

    for field, value in update_data.items():
        setattr(profile, field, value)

    await session.commit()
    await session.refresh(profile)

    return UserProfileRead.model_validate(profile)


@router.get(
    f"/{settings.app.version}/profile/username-available",
    response_model=UsernameAvailability,
    tags=["user_profile"],
)
async def check_username_available(
    username: str = Query(..., min_length=1, max_length=100),
    session: AsyncSession = Depends(get_session),
):
    return UsernameAvailability(
        username=username,
        available=not await username_taken(session, username),
    )
