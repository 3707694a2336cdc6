"""Business logic for follow/unfollow flows and follower listings."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minilove.core.database import atomic, paginate_query
from minilove.core.exceptions import (
    ResourceConflictException,
    ResourceNotFoundException,
    ValidationException,
)
from minilove.modules.users.models import Follow, FollowStatus, User
from minilove.modules.users.schemas import FollowUserOut
from minilove.services.posts.visibility import is_following

logger = logging.getLogger(__name__)


class FollowService:
    """Encapsulates follow/unfollow workflows."""

    def __init__(self, db: Session):
        self.db = db

    def _get_active_user(self, user_id: int) -> User:
        user = (
            self.db.query(User)
            .filter(User.id == user_id, User.is_active.is_(True))
            .first()
        )
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        return user

    def _edge(self, follower_id: int, following_id: int):
        return (
            self.db.query(Follow)
            .filter(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
            .first()
        )

    def follow_user(self, *, current_user: User, target_user_id: int) -> Follow:
        if target_user_id == current_user.id:
            raise ValidationException("You cannot follow yourself", error_code="cannot_follow_self")
        self._get_active_user(target_user_id)

        if self._edge(current_user.id, target_user_id) is not None:
            raise ResourceConflictException("You already follow this user")

        follow = Follow(
            follower_id=current_user.id,
            following_id=target_user_id,
            status=FollowStatus.APPROVED,
        )
        self.db.add(follow)
        try:
            with atomic(self.db):
                self.db.flush()
        except IntegrityError:
            raise ResourceConflictException("You already follow this user")
        self.db.refresh(follow)
        logger.info("User %s followed user %s", current_user.id, target_user_id)
        return follow

    def unfollow_user(self, *, current_user: User, target_user_id: int) -> None:
        follow = self._edge(current_user.id, target_user_id)
        if follow is None:
            raise ResourceNotFoundException("Follow relationship", target_user_id)
        with atomic(self.db):
            self.db.delete(follow)
        logger.info("User %s unfollowed user %s", current_user.id, target_user_id)

    def _listing(self, user_id: int, *, followers: bool, page: int, limit: int) -> Tuple[List[FollowUserOut], Dict[str, Any]]:
        self._get_active_user(user_id)
        if followers:
            join_on, match = Follow.follower_id, Follow.following_id
        else:
            join_on, match = Follow.following_id, Follow.follower_id
        query = (
            self.db.query(User, Follow.created_at)
            .join(Follow, join_on == User.id)
            .filter(
                match == user_id,
                Follow.status == FollowStatus.APPROVED,
                User.is_active.is_(True),
            )
            .order_by(Follow.created_at.desc(), Follow.id.desc())
        )
        rows, pagination = paginate_query(query, page, limit)
        users = [
            FollowUserOut.model_validate(user).model_copy(update={"followed_at": followed_at})
            for user, followed_at in rows
        ]
        return users, pagination

    def list_followers(self, user_id: int, *, page: int, limit: int):
        return self._listing(user_id, followers=True, page=page, limit=limit)

    def list_following(self, user_id: int, *, page: int, limit: int):
        return self._listing(user_id, followers=False, page=page, limit=limit)

    def is_following(self, follower_id: int, following_id: int) -> bool:
        return is_following(self.db, follower_id, following_id)
