"""Pydantic schemas for posts, comments, topics and bookmarks."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer

from minilove.modules.posts.models import CommentStatus, PostStatus, PostVisibility
from minilove.modules.users.models import MembershipLevel


class EditablePostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class NewPostStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class Timeframe(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class PostCreate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    content: str = Field(min_length=10, max_length=5000)
    images: List[str] = Field(default_factory=list, max_length=9)
    category: Optional[str] = Field(default=None, max_length=50)
    tags: List[str] = Field(default_factory=list, max_length=10)
    visibility: PostVisibility = PostVisibility.PUBLIC
    status: NewPostStatus = NewPostStatus.PUBLISHED


class PostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    content: Optional[str] = Field(default=None, min_length=10, max_length=5000)
    images: Optional[List[str]] = Field(default=None, max_length=9)
    category: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[List[str]] = Field(default=None, max_length=10)
    visibility: Optional[PostVisibility] = None
    status: Optional[EditablePostStatus] = None


class Author(BaseModel):
    id: int
    username: str
    avatar_url: Optional[str] = None
    membership_level: MembershipLevel

    model_config = ConfigDict(from_attributes=True)


class PostOut(BaseModel):
    id: int
    user_id: int
    title: Optional[str] = None
    content: str
    images: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    emotion_tags: List[str] = Field(default_factory=list)
    likes_count: int = 0
    comments_count: int = 0
    views_count: int = 0
    shares_count: int = 0
    visibility: PostVisibility
    status: PostStatus
    is_featured: bool = False
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: Optional[Author] = Field(
        default=None, validation_alias=AliasChoices("owner", "author")
    )
    is_liked: bool = False
    is_bookmarked: bool = False

    model_config = ConfigDict(from_attributes=True)


class TrendingPostOut(PostOut):
    trending_score: int = 0


class CommentCreate(BaseModel):
    post_id: int = Field(ge=1)
    content: str = Field(min_length=2, max_length=2000)
    parent_id: Optional[int] = Field(default=None, ge=1)
    images: List[str] = Field(default_factory=list, max_length=3)


class CommentUpdate(BaseModel):
    content: str = Field(min_length=2, max_length=2000)


class CommentOut(BaseModel):
    id: int
    post_id: int
    user_id: int
    parent_id: Optional[int] = None
    content: str
    images: List[str] = Field(default_factory=list)
    likes_count: int = 0
    is_edited: bool = False
    status: CommentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    author: Optional[Author] = Field(
        default=None, validation_alias=AliasChoices("owner", "author")
    )
    is_liked: bool = False
    # Filled by the service from published replies only, never from the ORM relationship.
    replies: List["CommentOut"] = Field(
        default_factory=list, validation_alias="reply_tree"
    )

    model_config = ConfigDict(from_attributes=True)


class TopicOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    cover_image: Optional[str] = None
    posts_count: int = 0
    participants_count: int = 0
    is_featured: bool = False
    recent_posts_count: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class MembershipPlanOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    duration_days: int
    features: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("price")
    def _price_as_number(self, price: Decimal) -> float:
        return float(price)


CommentOut.model_rebuild()
