"""Read-only catalog data: topics and membership plans."""

from __future__ import annotations

from typing import List

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from minilove.modules.membership.models import MembershipPlan
from minilove.modules.posts.models import Post, PostStatus, Topic
from minilove.modules.posts.schemas import MembershipPlanOut, TopicOut

PREMIUM_TOPICS_LIMIT = 10


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    def list_topics(self, *, featured_only: bool = False) -> List[TopicOut]:
        query = self.db.query(Topic).filter(Topic.is_active.is_(True))
        if featured_only:
            query = query.filter(Topic.is_featured.is_(True))
        topics = query.order_by(Topic.posts_count.desc(), Topic.id.asc()).all()
        return [TopicOut.model_validate(topic) for topic in topics]

    def premium_topics(self) -> List[TopicOut]:
        """Featured topics by participants, with the live count of published posts."""
        recent = func.count(Post.id).label("recent_posts_count")
        rows = (
            self.db.query(Topic, recent)
            .outerjoin(
                Post,
                and_(Post.category == Topic.name, Post.status == PostStatus.PUBLISHED),
            )
            .filter(Topic.is_active.is_(True), Topic.is_featured.is_(True))
            .group_by(Topic.id)
            .order_by(Topic.participants_count.desc(), Topic.id.asc())
            .limit(PREMIUM_TOPICS_LIMIT)
            .all()
        )
        return [
            TopicOut.model_validate(topic).model_copy(
                update={"recent_posts_count": int(count or 0)}
            )
            for topic, count in rows
        ]

    def list_plans(self) -> List[MembershipPlanOut]:
        plans = (
            self.db.query(MembershipPlan)
            .filter(MembershipPlan.is_active.is_(True))
            .order_by(MembershipPlan.price.asc(), MembershipPlan.id.asc())
            .all()
        )
        return [MembershipPlanOut.model_validate(plan) for plan in plans]
