"""Post domain SQLAlchemy models and enums.

Includes posts, threaded comments, likes (post XOR comment target), bookmarks and topics.
List-valued columns use JSONB on PostgreSQL and degrade to JSON on SQLite for tests.
"""

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql.sqltypes import TIMESTAMP

from minilove.core.database import Base
from minilove.core.db_defaults import jsonb_type, timestamp_default


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class PostVisibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    FRIENDS_ONLY = "friends_only"


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    HIDDEN = "hidden"
    DELETED = "deleted"


class CommentStatus(str, enum.Enum):
    PUBLISHED = "published"
    HIDDEN = "hidden"
    DELETED = "deleted"


class Post(Base):
    """Primary post entity."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, nullable=False)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title = Column(String(200), nullable=True)
    content = Column(Text, nullable=False)
    images = Column(jsonb_type(), default=list, nullable=False)
    category = Column(String(50), nullable=True)
    tags = Column(jsonb_type(), default=list, nullable=False)
    emotion_tags = Column(jsonb_type(), default=list, nullable=False)
    likes_count = Column(Integer, default=0, nullable=False)
    comments_count = Column(Integer, default=0, nullable=False)
    views_count = Column(Integer, default=0, nullable=False)
    shares_count = Column(Integer, default=0, nullable=False)
    visibility = Column(
        SQLAlchemyEnum(
            PostVisibility, name="post_visibility_enum", values_callable=_enum_values
        ),
        default=PostVisibility.PUBLIC,
        nullable=False,
    )
    status = Column(
        SQLAlchemyEnum(
            PostStatus, name="post_status_enum", values_callable=_enum_values
        ),
        default=PostStatus.PUBLISHED,
        nullable=False,
    )
    is_featured = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=timestamp_default(),
        onupdate=timestamp_default(),
    )

    owner = relationship("User", back_populates="posts")
    comments = relationship("Comment", back_populates="post")

    __table_args__ = (
        Index("ix_posts_user_id", "user_id"),
        Index("ix_posts_status_visibility", "status", "visibility"),
        Index("ix_posts_category", "category"),
        Index("ix_posts_created_at", "created_at"),
    )


class Comment(Base):
    """Comment on a post; replies point at a parent on the same post."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, nullable=False)
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    parent_id = Column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    content = Column(Text, nullable=False)
    images = Column(jsonb_type(), default=list, nullable=False)
    likes_count = Column(Integer, default=0, nullable=False)
    is_edited = Column(Boolean, default=False, nullable=False)
    status = Column(
        SQLAlchemyEnum(
            CommentStatus, name="comment_status_enum", values_callable=_enum_values
        ),
        default=CommentStatus.PUBLISHED,
        nullable=False,
    )
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=timestamp_default(),
        onupdate=timestamp_default(),
    )

    owner = relationship("User", back_populates="comments")
    post = relationship("Post", back_populates="comments")
    parent = relationship("Comment", remote_side=[id], back_populates="replies")
    replies = relationship("Comment", back_populates="parent")

    __table_args__ = (
        Index("ix_comments_post_id", "post_id"),
        Index("ix_comments_parent_id", "parent_id"),
    )


class Like(Base):
    """A user's like on exactly one target: a post or a comment."""

    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, nullable=False)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=True
    )
    comment_id = Column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    __table_args__ = (
        CheckConstraint(
            "(post_id IS NULL) <> (comment_id IS NULL)", name="ck_likes_single_target"
        ),
        # NULLs are distinct in plain UNIQUE constraints, so each target gets a partial index.
        Index(
            "uq_likes_user_post",
            "user_id",
            "post_id",
            unique=True,
            sqlite_where=text("post_id IS NOT NULL"),
            postgresql_where=text("post_id IS NOT NULL"),
        ),
        Index(
            "uq_likes_user_comment",
            "user_id",
            "comment_id",
            unique=True,
            sqlite_where=text("comment_id IS NOT NULL"),
            postgresql_where=text("comment_id IS NOT NULL"),
        ),
    )


class Bookmark(Base):
    """Saved post for a user."""

    __tablename__ = "bookmarks"

    id = Column(Integer, primary_key=True, nullable=False)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )

    post = relationship("Post")

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_bookmarks_user_post"),
    )


class Topic(Base):
    """Named category with post/participant counters."""

    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    cover_image = Column(String(500), nullable=True)
    posts_count = Column(Integer, default=0, nullable=False)
    participants_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=timestamp_default(),
        onupdate=timestamp_default(),
    )
