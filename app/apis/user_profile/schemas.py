from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.-]+$")
    full_name: Optional[str] = Field(None, max_length=200)
    avatar_url: Optional[str] = Field(None, max_length=500)


class UserProfileRead(BaseModel):
    id: int
    user_id: int
    username: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UsernameAvailability(BaseModel):
    username: str
    available: bool
