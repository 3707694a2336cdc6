"""Read-access rules for posts (and, through their post, comments).

- `public`: anyone.
- `private`: the author only.
- `friends_only`: the author, or a viewer holding an approved follow edge to the author.

Only published posts are readable by non-authors; authors also see their own drafts
and archived posts. Deleted and hidden posts are never readable.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from minilove.core.exceptions import (
    AuthenticationException,
    PermissionDeniedException,
    ResourceNotFoundException,
)
from minilove.modules.posts.models import Post, PostStatus, PostVisibility
from minilove.modules.users.models import Follow, FollowStatus, User

UNREADABLE_STATUSES = (PostStatus.DELETED, PostStatus.HIDDEN)


def is_following(db: Session, follower_id: int, following_id: int) -> bool:
    return (
        db.query(Follow.id)
        .filter(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
            Follow.status == FollowStatus.APPROVED,
        )
        .first()
        is not None
    )


def followed_ids_subquery(viewer_id: int):
    return select(Follow.following_id).where(
        Follow.follower_id == viewer_id, Follow.status == FollowStatus.APPROVED
    )


def can_view_post(db: Session, post: Post, viewer: Optional[User]) -> bool:
    if post.status in UNREADABLE_STATUSES:
        return False
    if viewer is not None and post.user_id == viewer.id:
        return True
    if post.status != PostStatus.PUBLISHED:
        return False
    if post.visibility == PostVisibility.PUBLIC:
        return True
    if viewer is None or post.visibility == PostVisibility.PRIVATE:
        return False
    return is_following(db, viewer.id, post.user_id)


def ensure_post_visible(db: Session, post: Optional[Post], viewer: Optional[User]) -> Post:
    """Return `post` when `viewer` may read it.

    Missing, deleted, hidden and other users' unpublished posts are reported as 404.
    Anonymous readers of a non-public post get 401; signed-in readers without access get 403.
    """
    if post is None or post.status in UNREADABLE_STATUSES:
        raise ResourceNotFoundException("Post", post.id if post else None)
    if can_view_post(db, post, viewer):
        return post
    if post.status != PostStatus.PUBLISHED:
        raise ResourceNotFoundException("Post", post.id)
    if viewer is None:
        raise AuthenticationException(message="Sign in to view this post")
    if post.visibility == PostVisibility.PRIVATE:
        raise PermissionDeniedException("This post is private")
    raise PermissionDeniedException("Only followers of the author can view this post")


def visible_posts_clause(viewer: Optional[User]):
    """SQL filter matching the published posts `viewer` may read, plus the viewer's own."""
    published_public = and_(
        Post.status == PostStatus.PUBLISHED, Post.visibility == PostVisibility.PUBLIC
    )
    if viewer is None:
        return published_public
    return or_(
        published_public,
        and_(Post.user_id == viewer.id, Post.status.notin_(UNREADABLE_STATUSES)),
        and_(
            Post.status == PostStatus.PUBLISHED,
            Post.visibility == PostVisibility.FRIENDS_ONLY,
            Post.user_id.in_(followed_ids_subquery(viewer.id)),
        ),
    )
