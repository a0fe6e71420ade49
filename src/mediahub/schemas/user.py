"""Pydantic schemas for accounts and sessions.

Learn: UserPublic is the only user shape that ever leaves the service
layer. It has no password or token fields, so nothing sensitive can be
serialized by accident.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserPublic(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ─── Requests ───────────────────────────────────────────

class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str = ""


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class UpdateProfileRequest(BaseModel):
    fullname: Optional[str] = None
    email: Optional[str] = None


# ─── Responses ──────────────────────────────────────────

class TokenData(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginData(TokenData):
    user: UserPublic
