"""SQLAlchemy models and enums for the users domain."""

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql.sqltypes import TIMESTAMP

from minilove.core.database import Base
from minilove.core.db_defaults import timestamp_default


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


class MembershipLevel(str, enum.Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class FollowStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"


class User(Base):
    """Application user model with profile, membership tier and activity counters."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, nullable=False)
    username = Column(String(50), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(20), nullable=True, unique=True)
    hashed_password = Column(String(255), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    gender = Column(
        SQLAlchemyEnum(Gender, name="gender_enum", values_callable=_enum_values),
        default=Gender.UNKNOWN,
        nullable=False,
    )
    age = Column(Integer, nullable=True)
    city = Column(String(100), nullable=True)
    role = Column(
        SQLAlchemyEnum(UserRole, name="user_role_enum", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )
    membership_level = Column(
        SQLAlchemyEnum(
            MembershipLevel, name="membership_level_enum", values_callable=_enum_values
        ),
        default=MembershipLevel.FREE,
        nullable=False,
    )
    membership_expires_at = Column(DateTime(timezone=True), nullable=True)
    posts_count = Column(Integer, default=0, nullable=False)
    comments_count = Column(Integer, default=0, nullable=False)
    likes_given_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=timestamp_default(),
        onupdate=timestamp_default(),
    )

    posts = relationship("Post", back_populates="owner")
    comments = relationship("Comment", back_populates="owner")
    following = relationship(
        "Follow",
        back_populates="follower",
        foreign_keys="Follow.follower_id",
        cascade="all, delete-orphan",
    )
    followers = relationship(
        "Follow",
        back_populates="followed",
        foreign_keys="Follow.following_id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_users_membership_level", "membership_level"),
        Index("ix_users_created_at", "created_at"),
    )


class Follow(Base):
    """Directed follower -> following edge between users."""

    __tablename__ = "follows"

    id = Column(Integer, primary_key=True, nullable=False)
    follower_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    following_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(
        SQLAlchemyEnum(
            FollowStatus, name="follow_status_enum", values_callable=_enum_values
        ),
        default=FollowStatus.APPROVED,
        nullable=False,
    )
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    follower = relationship(
        "User", back_populates="following", foreign_keys=[follower_id]
    )
    followed = relationship(
        "User", back_populates="followers", foreign_keys=[following_id]
    )

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_edge"),
        Index("ix_follows_following_id", "following_id"),
    )
