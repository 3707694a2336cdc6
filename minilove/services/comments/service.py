"""Service layer handling comment operations.

A comment is readable when its post is readable (see `services.posts.visibility`).
Creating and deleting a comment moves posts.comments_count and users.comments_count
in the same transaction; comment likes move comments.likes_count.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, List, Optional, Set

from sqlalchemy import asc
from sqlalchemy.orm import Session

from minilove.core.database import (
    atomic,
    clamped_decrement,
    increment,
    insert_ignoring_conflicts,
    paginate_query,
    with_select_loads,
)
from minilove.core.exceptions import (
    OwnershipRequiredException,
    ResourceConflictException,
    ResourceNotFoundException,
    ValidationException,
)
from minilove.modules.posts.models import Comment, CommentStatus, Like, Post, PostStatus
from minilove.modules.posts.schemas import CommentCreate, CommentOut, CommentUpdate
from minilove.modules.users.models import User
from minilove.services.posts.visibility import ensure_post_visible

logger = logging.getLogger(__name__)


class CommentService:
    """Encapsulates comment creation, editing, soft deletion and likes."""

    def __init__(self, db: Session):
        self.db = db

    def _get_readable_post(self, post_id: int, viewer: Optional[User]) -> Post:
        post = self.db.query(Post).filter(Post.id == post_id).first()
        post = ensure_post_visible(self.db, post, viewer)
        if post.status != PostStatus.PUBLISHED:
            raise ResourceNotFoundException("Post", post_id)
        return post

    def _get_comment(self, comment_id: int) -> Comment:
        comment = (
            with_select_loads(self.db.query(Comment), Comment.owner)
            .filter(Comment.id == comment_id)
            .first()
        )
        if comment is None:
            raise ResourceNotFoundException("Comment", comment_id)
        return comment

    def _liked_ids(self, viewer: Optional[User], comment_ids: List[int]) -> Set[int]:
        if viewer is None or not comment_ids:
            return set()
        return {
            row[0]
            for row in self.db.query(Like.comment_id).filter(
                Like.user_id == viewer.id, Like.comment_id.in_(comment_ids)
            )
        }

    def _to_out(self, comment: Comment, liked: Set[int]) -> CommentOut:
        out = CommentOut.model_validate(comment)
        out.replies = []
        out.is_liked = comment.id in liked
        return out

    # ------------------------------------------------------------------ reads

    def list_post_comments(self, post_id: int, *, viewer: Optional[User], page: int, limit: int):
        """Top-level comments (paginated, oldest first) with their published reply trees."""
        self._get_readable_post(post_id, viewer)
        published = self.db.query(Comment).filter(
            Comment.post_id == post_id, Comment.status == CommentStatus.PUBLISHED
        )
        roots_query = with_select_loads(
            published.filter(Comment.parent_id.is_(None)), Comment.owner
        ).order_by(asc(Comment.created_at), asc(Comment.id))
        roots, pagination = paginate_query(roots_query, page, limit)

        replies = (
            with_select_loads(published.filter(Comment.parent_id.isnot(None)), Comment.owner)
            .order_by(asc(Comment.created_at), asc(Comment.id))
            .all()
        )
        liked = self._liked_ids(viewer, [c.id for c in roots] + [c.id for c in replies])

        children: Dict[int, List[Comment]] = defaultdict(list)
        for reply in replies:
            children[reply.parent_id].append(reply)

        def build(comment: Comment) -> CommentOut:
            node = self._to_out(comment, liked)
            node.replies = [build(child) for child in children.get(comment.id, [])]
            return node

        return [build(root) for root in roots], pagination

    # ------------------------------------------------------------------ writes

    def create_comment(self, *, current_user: User, payload: CommentCreate) -> CommentOut:
        post = self._get_readable_post(payload.post_id, current_user)

        if payload.parent_id is not None:
            parent = self.db.query(Comment).filter(Comment.id == payload.parent_id).first()
            if parent is None or parent.status != CommentStatus.PUBLISHED:
                raise ResourceNotFoundException("Parent comment", payload.parent_id)
            if parent.post_id != post.id:
                raise ValidationException(
                    "Parent comment belongs to a different post", "parent_id"
                )

        comment = Comment(
            post_id=post.id,
            user_id=current_user.id,
            parent_id=payload.parent_id,
            content=payload.content.strip(),
            images=list(payload.images),
            status=CommentStatus.PUBLISHED,
        )
        with atomic(self.db):
            self.db.add(comment)
            self.db.flush()
            self.db.query(Post).filter(Post.id == post.id).update(
                {Post.comments_count: increment(Post.comments_count)},
                synchronize_session=False,
            )
            self.db.query(User).filter(User.id == current_user.id).update(
                {User.comments_count: increment(User.comments_count)},
                synchronize_session=False,
            )
        logger.info(
            "User %s commented %s on post %s", current_user.id, comment.id, post.id
        )
        return self._to_out(self._get_comment(comment.id), set())

    def _get_owned_live_comment(self, current_user: User, comment_id: int) -> Comment:
        comment = self._get_comment(comment_id)
        if comment.user_id != current_user.id:
            raise OwnershipRequiredException("comment")
        if comment.status == CommentStatus.DELETED:
            raise ValidationException(
                "Comment has already been deleted", error_code="comment_deleted"
            )
        return comment

    def update_comment(self, *, current_user: User, comment_id: int, payload: CommentUpdate) -> CommentOut:
        comment = self._get_owned_live_comment(current_user, comment_id)
        with atomic(self.db):
            comment.content = payload.content.strip()
            comment.is_edited = True
        logger.info("User %s edited comment %s", current_user.id, comment_id)
        comment = self._get_comment(comment_id)
        return self._to_out(comment, self._liked_ids(current_user, [comment.id]))

    def delete_comment(self, *, current_user: User, comment_id: int) -> None:
        """Soft delete; the post's comment counter drops by one, never below zero."""
        comment = self._get_owned_live_comment(current_user, comment_id)
        was_published = comment.status == CommentStatus.PUBLISHED
        with atomic(self.db):
            comment.status = CommentStatus.DELETED
            if was_published:
                self.db.query(Post).filter(Post.id == comment.post_id).update(
                    {Post.comments_count: clamped_decrement(Post.comments_count)},
                    synchronize_session=False,
                )
                self.db.query(User).filter(User.id == comment.user_id).update(
                    {User.comments_count: clamped_decrement(User.comments_count)},
                    synchronize_session=False,
                )
        logger.info("User %s deleted comment %s", current_user.id, comment_id)

    def _get_likeable_comment(self, current_user: User, comment_id: int) -> Comment:
        comment = self._get_comment(comment_id)
        if comment.status != CommentStatus.PUBLISHED:
            raise ValidationException(
                "Only published comments can be liked", error_code="comment_unavailable"
            )
        self._get_readable_post(comment.post_id, current_user)
        return comment

    def like_comment(self, *, current_user: User, comment_id: int) -> int:
        comment = self._get_likeable_comment(current_user, comment_id)
        with atomic(self.db):
            if not insert_ignoring_conflicts(
                self.db, Like, {"user_id": current_user.id, "comment_id": comment.id}
            ):
                raise ResourceConflictException("You already liked this comment")
            self.db.query(Comment).filter(Comment.id == comment.id).update(
                {Comment.likes_count: increment(Comment.likes_count)},
                synchronize_session=False,
            )
            self.db.query(User).filter(User.id == current_user.id).update(
                {User.likes_given_count: increment(User.likes_given_count)},
                synchronize_session=False,
            )
        logger.info("User %s liked comment %s", current_user.id, comment_id)
        return self._likes_count(comment.id)

    def unlike_comment(self, *, current_user: User, comment_id: int) -> int:
        comment = self._get_comment(comment_id)
        with atomic(self.db):
            removed = (
                self.db.query(Like)
                .filter(Like.user_id == current_user.id, Like.comment_id == comment.id)
                .delete(synchronize_session=False)
            )
            if not removed:
                raise ResourceNotFoundException("Like", comment_id)
            self.db.query(Comment).filter(Comment.id == comment.id).update(
                {Comment.likes_count: clamped_decrement(Comment.likes_count)},
                synchronize_session=False,
            )
            self.db.query(User).filter(User.id == current_user.id).update(
                {User.likes_given_count: clamped_decrement(User.likes_given_count)},
                synchronize_session=False,
            )
        logger.info("User %s unliked comment %s", current_user.id, comment_id)
        return self._likes_count(comment.id)

    def _likes_count(self, comment_id: int) -> int:
        return (
            self.db.query(Comment.likes_count).filter(Comment.id == comment_id).scalar()
            or 0
        )
