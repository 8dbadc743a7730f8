"""Account management: fastapi-users wiring for bearer-JWT sign-in."""

from .users import (
    UserCreate,
    UserRead,
    UserUpdate,
    auth_backend,
    current_active_user,
    fastapi_users,
    get_user_manager,
)

__all__ = [
    "UserCreate",
    "UserRead",
    "UserUpdate",
    "auth_backend",
    "current_active_user",
    "fastapi_users",
    "get_user_manager",
]
