"""Users router: own profile, public profiles, search, follows and admin controls."""

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from minilove import oauth2
from minilove.core.database import get_db
from minilove.core.middleware.rate_limit import WRITE_LIMIT, limiter
from minilove.modules.users.models import User
from minilove.modules.users.schemas import (
    CurrentUser,
    ProfileUpdate,
    UserOut,
    UserPublic,
    UserStatusUpdate,
)
from minilove.schemas import envelope, paged
from minilove.services.posts.service import PostService
from minilove.services.social.follow_service import FollowService
from minilove.services.users.service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_follow_service(db: Session = Depends(get_db)) -> FollowService:
    return FollowService(db)


def get_post_service(db: Session = Depends(get_db)) -> PostService:
    return PostService(db)


@router.get("/me")
def read_me(
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Current user with membership status and stats."""
    me = CurrentUser(
        **UserOut.model_validate(current_user).model_dump(),
        membership=service.membership_status(current_user),
        stats=service.compute_stats(current_user),
    )
    return envelope({"user": me})


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Edit bio, gender, age (18-100), city and avatar; at least one field is required."""
    user = service.update_profile(current_user, payload)
    return envelope({"user": UserOut.model_validate(user)}, "Profile updated")


@router.get("/me/bookmarks")
def my_bookmarks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    posts, pagination = service.list_bookmarks(user=current_user, page=page, limit=limit)
    return paged("posts", posts, pagination)


@router.get("/search/{keyword}")
def search_users(
    keyword: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
):
    users, pagination = service.search_users(keyword, page=page, limit=limit)
    return paged("users", [UserPublic.model_validate(u) for u in users], pagination)


@router.get("/")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(oauth2.get_current_admin),
    service: UserService = Depends(get_user_service),
):
    """Admin only: every account, newest first, including disabled ones."""
    users, pagination = service.list_users(page=page, limit=limit)
    return paged("users", [UserOut.model_validate(u) for u in users], pagination)


@router.get("/{user_id}")
def read_user(
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
    follows: FollowService = Depends(get_follow_service),
):
    user = service.get_user(user_id)
    return envelope(
        {
            "user": UserPublic.model_validate(user),
            "is_following": follows.is_following(current_user.id, user.id),
        }
    )


@router.patch("/{user_id}/status")
def set_user_status(
    payload: UserStatusUpdate,
    user_id: int = Path(..., gt=0),
    admin: User = Depends(oauth2.get_current_admin),
    service: UserService = Depends(get_user_service),
):
    user = service.set_active(admin, user_id, payload.is_active)
    return envelope(
        {"user": UserOut.model_validate(user)},
        "User enabled" if user.is_active else "User disabled",
    )


@router.post("/{user_id}/follow", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def follow_user(
    request: Request,
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: FollowService = Depends(get_follow_service),
):
    """
    Follow a user.

    Process:
      - Following yourself is rejected (400).
      - The target must exist and be active (404).
      - An existing edge is a conflict (409).
    """
    follow = service.follow_user(current_user=current_user, target_user_id=user_id)
    return envelope(
        {"following_id": follow.following_id, "status": follow.status},
        "Followed",
    )


@router.delete("/{user_id}/follow")
@limiter.limit(WRITE_LIMIT)
def unfollow_user(
    request: Request,
    user_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: FollowService = Depends(get_follow_service),
):
    service.unfollow_user(current_user=current_user, target_user_id=user_id)
    return envelope(message="Unfollowed")


@router.get("/{user_id}/following")
def list_following(
    user_id: int = Path(..., gt=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(oauth2.get_current_user),
    service: FollowService = Depends(get_follow_service),
):
    users, pagination = service.list_following(user_id, page=page, limit=limit)
    return paged("users", users, pagination)


@router.get("/{user_id}/followers")
def list_followers(
    user_id: int = Path(..., gt=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(oauth2.get_current_user),
    service: FollowService = Depends(get_follow_service),
):
    users, pagination = service.list_followers(user_id, page=page, limit=limit)
    return paged("users", users, pagination)
