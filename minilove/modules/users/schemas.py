"""Pydantic schemas for the users domain."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from minilove.modules.users.models import Gender, MembershipLevel, UserRole

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
PHONE_PATTERN = r"^1[3-9]\d{9}$"


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(min_length=6, max_length=100)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    gender: Optional[Gender] = None
    age: Optional[int] = Field(default=None, ge=1, le=150)
    city: Optional[str] = Field(default=None, max_length=100)


class UserLogin(BaseModel):
    """`username` accepts either the username or the email address."""

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AccountUpdate(BaseModel):
    username: Optional[str] = Field(
        default=None, min_length=3, max_length=50, pattern=USERNAME_PATTERN
    )
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    bio: Optional[str] = Field(default=None, max_length=500)
    gender: Optional[Gender] = None
    age: Optional[int] = Field(default=None, ge=1, le=150)
    city: Optional[str] = Field(default=None, max_length=100)


class ProfileUpdate(BaseModel):
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    bio: Optional[str] = Field(default=None, max_length=500)
    gender: Optional[Gender] = None
    age: Optional[int] = Field(default=None, ge=18, le=100)
    city: Optional[str] = Field(default=None, max_length=100)


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=100)


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserBrief(BaseModel):
    id: int
    username: str
    avatar_url: Optional[str] = None
    membership_level: MembershipLevel

    model_config = ConfigDict(from_attributes=True)


class UserPublic(UserBrief):
    bio: Optional[str] = None
    gender: Gender = Gender.UNKNOWN
    city: Optional[str] = None
    posts_count: int = 0
    created_at: datetime


class UserOut(UserPublic):
    email: str
    phone: Optional[str] = None
    age: Optional[int] = None
    role: UserRole = UserRole.USER
    membership_expires_at: Optional[datetime] = None
    comments_count: int = 0
    likes_given_count: int = 0
    is_active: bool = True
    is_verified: bool = False
    updated_at: Optional[datetime] = None


class UserStats(BaseModel):
    posts: int = 0
    comments: int = 0
    likes_given: int = 0
    likes_received: int = 0
    followers: int = 0
    following: int = 0


class UserProfile(UserOut):
    stats: UserStats


class FollowUserOut(UserBrief):
    bio: Optional[str] = None
    followed_at: Optional[datetime] = None


class MembershipStatus(BaseModel):
    level: MembershipLevel
    expires_at: Optional[datetime] = None
    is_active: bool


class CurrentUser(UserOut):
    membership: MembershipStatus
    stats: Optional[UserStats] = None


class TokenData(BaseModel):
    id: int
    role: str = "user"


class AuthPayload(BaseModel):
    user: UserOut
    token: str


__all__ = [
    "AccountUpdate",
    "AuthPayload",
    "CurrentUser",
    "FollowUserOut",
    "MembershipStatus",
    "PasswordChange",
    "ProfileUpdate",
    "TokenData",
    "UserBrief",
    "UserCreate",
    "UserLogin",
    "UserOut",
    "UserProfile",
    "UserPublic",
    "UserStats",
    "UserStatusUpdate",
]
