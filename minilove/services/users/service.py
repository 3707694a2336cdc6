"""Account lifecycle and profile operations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minilove.core.database import atomic, paginate_query
from minilove.core.exceptions import (
    AccountDisabledException,
    InvalidCredentialsException,
    ResourceAlreadyExistsException,
    ResourceNotFoundException,
    ValidationException,
)
from minilove.modules.posts.models import Post, PostStatus
from minilove.modules.users.models import Follow, FollowStatus, MembershipLevel, User
from minilove.modules.users.schemas import (
    AccountUpdate,
    MembershipStatus,
    PasswordChange,
    ProfileUpdate,
    UserCreate,
    UserStats,
)
from minilove.modules.utils import security

logger = logging.getLogger(__name__)

UNIQUE_FIELDS = ("username", "email", "phone")


class UserService:
    """Registration, login, profile edits and admin account management."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ lookup

    def get_user(self, user_id: int, *, active_only: bool = True) -> User:
        query = self.db.query(User).filter(User.id == user_id)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        user = query.first()
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        return user

    def _ensure_unique(self, values: Dict[str, Any], *, exclude_id: Optional[int] = None) -> None:
        for field in UNIQUE_FIELDS:
            value = values.get(field)
            if value is None:
                continue
            query = self.db.query(User.id).filter(getattr(User, field) == value)
            if exclude_id is not None:
                query = query.filter(User.id != exclude_id)
            if query.first() is not None:
                raise ResourceAlreadyExistsException("User", field)

    # ------------------------------------------------------------------ auth

    def register(self, payload: UserCreate) -> User:
        values = payload.model_dump(exclude_none=True)
        values["email"] = values["email"].lower()
        self._ensure_unique(values)

        password = values.pop("password")
        user = User(**values, hashed_password=security.hash(password))
        self.db.add(user)
        try:
            with atomic(self.db):
                self.db.flush()
        except IntegrityError:
            # Concurrent registration won the race for one of the unique fields.
            raise ResourceAlreadyExistsException("User")
        self.db.refresh(user)
        logger.info("Registered user %s (%s)", user.id, user.username)
        return user

    def authenticate(self, login: str, password: str) -> User:
        """Resolve `login` as a username or email and check the password."""
        login = login.strip()
        user = (
            self.db.query(User)
            .filter(or_(User.username == login, User.email == login.lower()))
            .first()
        )
        if user is None or not security.verify(password, user.hashed_password):
            logger.info("Failed login attempt for %s", login)
            raise InvalidCredentialsException()
        if not user.is_active:
            raise AccountDisabledException()
        logger.info("User %s signed in", user.id)
        return user

    def change_password(self, user: User, payload: PasswordChange) -> None:
        if not security.verify(payload.current_password, user.hashed_password):
            raise InvalidCredentialsException("Current password is incorrect")
        if payload.current_password == payload.new_password:
            raise ValidationException(
                "New password must differ from the current one", "new_password"
            )
        with atomic(self.db):
            user.hashed_password = security.hash(payload.new_password)
        logger.info("User %s changed password", user.id)

    # ------------------------------------------------------------------ profile

    def compute_stats(self, user: User) -> UserStats:
        likes_received = (
            self.db.query(func.coalesce(func.sum(Post.likes_count), 0))
            .filter(Post.user_id == user.id, Post.status != PostStatus.DELETED)
            .scalar()
        )
        followers = (
            self.db.query(func.count(Follow.id))
            .filter(
                Follow.following_id == user.id, Follow.status == FollowStatus.APPROVED
            )
            .scalar()
        )
        following = (
            self.db.query(func.count(Follow.id))
            .filter(
                Follow.follower_id == user.id, Follow.status == FollowStatus.APPROVED
            )
            .scalar()
        )
        return UserStats(
            posts=user.posts_count,
            comments=user.comments_count,
            likes_given=user.likes_given_count,
            likes_received=int(likes_received or 0),
            followers=followers or 0,
            following=following or 0,
        )

    @staticmethod
    def membership_status(user: User) -> MembershipStatus:
        expires_at = user.membership_expires_at
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        is_active = user.membership_level != MembershipLevel.FREE and (
            expires_at is None or expires_at > datetime.now(timezone.utc)
        )
        return MembershipStatus(
            level=user.membership_level,
            expires_at=user.membership_expires_at,
            is_active=is_active,
        )

    def update_account(self, user: User, payload: AccountUpdate) -> User:
        values = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not values:
            raise ValidationException("No fields to update")
        if "email" in values:
            values["email"] = values["email"].lower()
        self._ensure_unique(values, exclude_id=user.id)
        return self._apply(user, values)

    def update_profile(self, user: User, payload: ProfileUpdate) -> User:
        columns = User.__table__.c
        values = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or columns[key].nullable
        }
        if not values:
            raise ValidationException("No fields to update")
        return self._apply(user, values)

    def _apply(self, user: User, values: Dict[str, Any]) -> User:
        with atomic(self.db):
            for key, value in values.items():
                setattr(user, key, value)
        self.db.refresh(user)
        logger.info("User %s updated %s", user.id, ", ".join(sorted(values)))
        return user

    # ------------------------------------------------------------------ listing

    def search_users(self, keyword: str, *, page: int, limit: int) -> Tuple[List[User], Dict[str, Any]]:
        keyword = (keyword or "").strip()
        if len(keyword) < 2:
            raise ValidationException("Search keyword must be at least 2 characters", "keyword")
        pattern = f"%{keyword}%"
        query = (
            self.db.query(User)
            .filter(User.is_active.is_(True))
            .filter(or_(User.username.ilike(pattern), User.bio.ilike(pattern)))
            .order_by(User.posts_count.desc(), User.id.asc())
        )
        return paginate_query(query, page, limit)

    def list_users(self, *, page: int, limit: int) -> Tuple[List[User], Dict[str, Any]]:
        query = self.db.query(User).order_by(User.created_at.desc(), User.id.desc())
        return paginate_query(query, page, limit)

    def set_active(self, admin: User, user_id: int, is_active: bool) -> User:
        if admin.id == user_id and not is_active:
            raise ValidationException("Administrators cannot disable their own account")
        user = self.get_user(user_id, active_only=False)
        with atomic(self.db):
            user.is_active = is_active
        self.db.refresh(user)
        logger.info(
            "Admin %s set user %s active=%s", admin.id, user.id, user.is_active
        )
        return user
