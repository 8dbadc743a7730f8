from fastapi import APIRouter

from app.core.config import settings
from app.modules.auth import UserCreate, UserRead, UserUpdate, auth_backend, fastapi_users


router = APIRouter(prefix=f"/{settings.app.version}")

# POST /auth/login takes form fields username (the e-mail) and password
router.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth", tags=["auth"])
router.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"]
)
router.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
router.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"]
)
