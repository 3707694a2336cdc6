"""Import every domain model so `Base.metadata` is complete (create_all, Alembic)."""

from minilove.modules.membership.models import MembershipPlan
from minilove.modules.posts.models import Bookmark, Comment, Like, Post, Topic
from minilove.modules.users.models import Follow, User

__all__ = [
    "Bookmark",
    "Comment",
    "Follow",
    "Like",
    "MembershipPlan",
    "Post",
    "Topic",
    "User",
]
