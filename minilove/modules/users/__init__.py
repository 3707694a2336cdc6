"""User domain package exports."""

from .models import FollowStatus, Follow, Gender, MembershipLevel, User, UserRole

__all__ = [
    "Follow",
    "FollowStatus",
    "Gender",
    "MembershipLevel",
    "User",
    "UserRole",
]
