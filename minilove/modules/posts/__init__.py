"""Post domain package exports."""

from .models import (
    Bookmark,
    Comment,
    CommentStatus,
    Like,
    Post,
    PostStatus,
    PostVisibility,
    Topic,
)

__all__ = [
    "Bookmark",
    "Comment",
    "CommentStatus",
    "Like",
    "Post",
    "PostStatus",
    "PostVisibility",
    "Topic",
]
