"""Post workflows: feeds, detail reads, authoring, likes and bookmarks.

Counter columns (posts.likes_count, posts.views_count, users.posts_count,
users.likes_given_count, topics.posts_count) are updated with SQL expressions in the
same transaction as the row that justifies them; decrements never go below zero.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import and_, desc, or_
from sqlalchemy.orm import Session

from minilove.core.database import (
    atomic,
    clamped_decrement,
    increment,
    insert_ignoring_conflicts,
    json_array_contains,
    paginate_query,
    with_select_loads,
)
from minilove.core.exceptions import (
    OwnershipRequiredException,
    ResourceConflictException,
    ResourceNotFoundException,
)
from minilove.modules.posts.models import (
    Bookmark,
    Like,
    Post,
    PostStatus,
    PostVisibility,
    Topic,
)
from minilove.modules.posts.schemas import (
    PostCreate,
    PostOut,
    PostUpdate,
    Timeframe,
    TrendingPostOut,
)
from minilove.modules.users.models import User
from minilove.modules.utils.content import extract_emotion_tags, normalize_tags
from minilove.services.posts.visibility import (
    ensure_post_visible,
    followed_ids_subquery,
    visible_posts_clause,
)

logger = logging.getLogger(__name__)

TIMEFRAMES = {
    Timeframe.DAY: timedelta(days=1),
    Timeframe.WEEK: timedelta(weeks=1),
    Timeframe.MONTH: timedelta(days=30),
}

CLEARABLE_FIELDS = ("title", "category")

trending_score = Post.likes_count * 2 + Post.comments_count * 3 + Post.views_count


class PostService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ helpers

    def _base_query(self):
        return with_select_loads(self.db.query(Post), Post.owner)

    def _get_post(self, post_id: int) -> Post:
        post = self._base_query().filter(Post.id == post_id).first()
        if post is None or post.status == PostStatus.DELETED:
            raise ResourceNotFoundException("Post", post_id)
        return post

    def _get_owned_post(self, user: User, post_id: int) -> Post:
        post = self._get_post(post_id)
        if post.user_id != user.id:
            raise OwnershipRequiredException("post")
        return post

    def _viewer_flags(self, viewer: Optional[User], post_ids: Iterable[int]) -> Tuple[Set[int], Set[int]]:
        post_ids = list(post_ids)
        if viewer is None or not post_ids:
            return set(), set()
        liked = {
            row[0]
            for row in self.db.query(Like.post_id).filter(
                Like.user_id == viewer.id, Like.post_id.in_(post_ids)
            )
        }
        bookmarked = {
            row[0]
            for row in self.db.query(Bookmark.post_id).filter(
                Bookmark.user_id == viewer.id, Bookmark.post_id.in_(post_ids)
            )
        }
        return liked, bookmarked

    def serialize(self, posts: List[Post], viewer: Optional[User], schema=PostOut) -> List[PostOut]:
        liked, bookmarked = self._viewer_flags(viewer, (post.id for post in posts))
        items = []
        for post in posts:
            item = schema.model_validate(post)
            item.is_liked = post.id in liked
            item.is_bookmarked = post.id in bookmarked
            items.append(item)
        return items

    def _adjust_publication_counters(self, post: Post, delta: int) -> None:
        """Move users.posts_count and the category topic's posts_count by `delta` (+1/-1)."""
        op = increment if delta > 0 else clamped_decrement
        self.db.query(User).filter(User.id == post.user_id).update(
            {User.posts_count: op(User.posts_count)}, synchronize_session=False
        )
        if post.category:
            self.db.query(Topic).filter(Topic.name == post.category).update(
                {Topic.posts_count: op(Topic.posts_count)}, synchronize_session=False
            )

    # ------------------------------------------------------------------ reads

    def list_posts(
        self,
        *,
        viewer: Optional[User],
        page: int,
        limit: int,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ):
        query = self._base_query().filter(
            Post.status == PostStatus.PUBLISHED,
            Post.visibility == PostVisibility.PUBLIC,
        )
        if category:
            query = query.filter(Post.category == category)
        if tag:
            query = query.filter(json_array_contains(self.db, Post.tags, tag))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Post.title.ilike(pattern), Post.content.ilike(pattern)))
        query = query.order_by(desc(Post.created_at), desc(Post.id))
        posts, pagination = paginate_query(query, page, limit)
        return self.serialize(posts, viewer), pagination

    def list_featured(self, *, viewer: Optional[User], page: int, limit: int):
        query = (
            self._base_query()
            .filter(
                Post.is_featured.is_(True),
                Post.status == PostStatus.PUBLISHED,
                Post.visibility == PostVisibility.PUBLIC,
            )
            .order_by(desc(Post.created_at), desc(Post.id))
        )
        posts, pagination = paginate_query(query, page, limit)
        return self.serialize(posts, viewer), pagination

    def list_trending(self, *, viewer: Optional[User], timeframe: Timeframe, limit: int) -> List[TrendingPostOut]:
        since = datetime.now(timezone.utc) - TIMEFRAMES[timeframe]
        rows = (
            self.db.query(Post, trending_score.label("score"))
            .filter(
                Post.status == PostStatus.PUBLISHED,
                Post.visibility == PostVisibility.PUBLIC,
                Post.created_at >= since,
            )
            .order_by(desc("score"), desc(Post.created_at), desc(Post.id))
            .limit(limit)
            .all()
        )
        items = self.serialize([post for post, _ in rows], viewer, schema=TrendingPostOut)
        for item, (_, score) in zip(items, rows):
            item.trending_score = int(score or 0)
        return items

    def get_post(self, post_id: int, *, viewer: Optional[User]) -> PostOut:
        """Detail read; each successful read counts as one view."""
        post = ensure_post_visible(self.db, self._get_post(post_id), viewer)
        with atomic(self.db):
            self.db.query(Post).filter(Post.id == post.id).update(
                {Post.views_count: increment(Post.views_count)},
                synchronize_session=False,
            )
        self.db.refresh(post)
        return self.serialize([post], viewer)[0]

    def list_user_posts(self, user_id: int, *, viewer: Optional[User], page: int, limit: int):
        author = (
            self.db.query(User)
            .filter(User.id == user_id, User.is_active.is_(True))
            .first()
        )
        if author is None:
            raise ResourceNotFoundException("User", user_id)
        query = (
            self._base_query()
            .filter(Post.user_id == user_id, visible_posts_clause(viewer))
            .order_by(desc(Post.created_at), desc(Post.id))
        )
        posts, pagination = paginate_query(query, page, limit)
        return self.serialize(posts, viewer), pagination

    def premium_feed(self, *, user: User, page: int, limit: int):
        """Published posts from followed authors, plus featured public posts."""
        from_followed = and_(
            Post.user_id.in_(followed_ids_subquery(user.id)),
            Post.visibility.in_((PostVisibility.PUBLIC, PostVisibility.FRIENDS_ONLY)),
        )
        featured = and_(
            Post.is_featured.is_(True), Post.visibility == PostVisibility.PUBLIC
        )
        query = (
            self._base_query()
            .filter(Post.status == PostStatus.PUBLISHED, or_(from_followed, featured))
            .order_by(desc(Post.created_at), desc(Post.id))
        )
        posts, pagination = paginate_query(query, page, limit)
        return self.serialize(posts, user), pagination

    def list_bookmarks(self, *, user: User, page: int, limit: int):
        query = (
            self._base_query()
            .join(Bookmark, Bookmark.post_id == Post.id)
            .filter(Bookmark.user_id == user.id, visible_posts_clause(user))
            .order_by(desc(Bookmark.created_at), desc(Bookmark.id))
        )
        posts, pagination = paginate_query(query, page, limit)
        return self.serialize(posts, user), pagination

    # ------------------------------------------------------------------ writes

    def create_post(self, *, user: User, payload: PostCreate) -> PostOut:
        status = PostStatus(payload.status.value)
        post = Post(
            user_id=user.id,
            title=payload.title,
            content=payload.content,
            images=list(payload.images),
            category=payload.category,
            tags=normalize_tags(payload.tags),
            emotion_tags=extract_emotion_tags(payload.title, payload.content),
            visibility=payload.visibility,
            status=status,
            published_at=datetime.now(timezone.utc)
            if status == PostStatus.PUBLISHED
            else None,
        )
        with atomic(self.db):
            self.db.add(post)
            self.db.flush()
            if status == PostStatus.PUBLISHED:
                self._adjust_publication_counters(post, +1)
        logger.info("User %s created post %s", user.id, post.id)
        return self.serialize([self._get_post(post.id)], user)[0]

    def update_post(self, *, user: User, post_id: int, payload: PostUpdate) -> PostOut:
        post = self._get_owned_post(user, post_id)
        values = payload.model_dump(exclude_unset=True)
        was_published = post.status == PostStatus.PUBLISHED
        old_category = post.category

        with atomic(self.db):
            if was_published:
                self._adjust_publication_counters(post, -1)

            for key in ("title", "content", "images", "category", "visibility"):
                if key not in values:
                    continue
                if values[key] is None and key not in CLEARABLE_FIELDS:
                    continue
                setattr(post, key, values[key])
            if values.get("tags") is not None:
                post.tags = normalize_tags(values["tags"])
            if "title" in values or "content" in values:
                post.emotion_tags = extract_emotion_tags(post.title, post.content)
            if values.get("status") is not None:
                post.status = PostStatus(values["status"].value)
                if post.status == PostStatus.PUBLISHED and post.published_at is None:
                    post.published_at = datetime.now(timezone.utc)

            self.db.flush()
            if post.status == PostStatus.PUBLISHED:
                self._adjust_publication_counters(post, +1)

        logger.info(
            "User %s updated post %s (category %s -> %s)",
            user.id,
            post.id,
            old_category,
            post.category,
        )
        return self.serialize([self._get_post(post.id)], user)[0]

    def delete_post(self, *, user: User, post_id: int) -> None:
        """Soft delete: the row stays with status `deleted`."""
        post = self._get_owned_post(user, post_id)
        with atomic(self.db):
            if post.status == PostStatus.PUBLISHED:
                self._adjust_publication_counters(post, -1)
            post.status = PostStatus.DELETED
        logger.info("User %s deleted post %s", user.id, post_id)

    def like_post(self, *, user: User, post_id: int) -> int:
        """Record a like; returns the post's new likes_count."""
        post = ensure_post_visible(self.db, self._get_post(post_id), user)
        if post.status != PostStatus.PUBLISHED:
            raise ResourceNotFoundException("Post", post_id)
        with atomic(self.db):
            if not insert_ignoring_conflicts(
                self.db, Like, {"user_id": user.id, "post_id": post.id}
            ):
                raise ResourceConflictException("You already liked this post")
            self.db.query(Post).filter(Post.id == post.id).update(
                {Post.likes_count: increment(Post.likes_count)},
                synchronize_session=False,
            )
            self.db.query(User).filter(User.id == user.id).update(
                {User.likes_given_count: increment(User.likes_given_count)},
                synchronize_session=False,
            )
        logger.info("User %s liked post %s", user.id, post_id)
        return self._likes_count(post.id)

    def unlike_post(self, *, user: User, post_id: int) -> int:
        post = self._get_post(post_id)
        with atomic(self.db):
            removed = (
                self.db.query(Like)
                .filter(Like.user_id == user.id, Like.post_id == post.id)
                .delete(synchronize_session=False)
            )
            if not removed:
                raise ResourceNotFoundException("Like", post_id)
            self.db.query(Post).filter(Post.id == post.id).update(
                {Post.likes_count: clamped_decrement(Post.likes_count)},
                synchronize_session=False,
            )
            self.db.query(User).filter(User.id == user.id).update(
                {User.likes_given_count: clamped_decrement(User.likes_given_count)},
                synchronize_session=False,
            )
        logger.info("User %s unliked post %s", user.id, post_id)
        return self._likes_count(post.id)

    def _likes_count(self, post_id: int) -> int:
        return self.db.query(Post.likes_count).filter(Post.id == post_id).scalar() or 0

    def bookmark_post(self, *, user: User, post_id: int) -> None:
        post = ensure_post_visible(self.db, self._get_post(post_id), user)
        with atomic(self.db):
            if not insert_ignoring_conflicts(
                self.db, Bookmark, {"user_id": user.id, "post_id": post.id}
            ):
                raise ResourceConflictException("Post is already bookmarked")
        logger.info("User %s bookmarked post %s", user.id, post_id)

    def unbookmark_post(self, *, user: User, post_id: int) -> None:
        with atomic(self.db):
            removed = (
                self.db.query(Bookmark)
                .filter(Bookmark.user_id == user.id, Bookmark.post_id == post_id)
                .delete(synchronize_session=False)
            )
            if not removed:
                raise ResourceNotFoundException("Bookmark", post_id)
        logger.info("User %s removed bookmark on post %s", user.id, post_id)
