"""Schema bootstrap and default catalog rows.

`init_db` creates any missing tables and inserts the default membership plans and
topics. Seeding is idempotent: rows are matched by their unique `name`.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from minilove.core.database.adapter import Database
from minilove.models.base import Base

logger = logging.getLogger(__name__)

DEFAULT_PLANS: List[Dict[str, Any]] = [
    {
        "name": "free",
        "description": "Free tier",
        "price": 0,
        "duration_days": 9999,
        "features": {"daily_posts": 3, "daily_comments": 20, "premium_feed": False},
    },
    {
        "name": "basic",
        "description": "Basic membership",
        "price": 29.90,
        "duration_days": 30,
        "features": {"daily_posts": 10, "daily_comments": 100, "premium_feed": False},
    },
    {
        "name": "premium",
        "description": "Premium membership",
        "price": 89.90,
        "duration_days": 30,
        "features": {
            "daily_posts": -1,
            "daily_comments": -1,
            "premium_feed": True,
            "premium_topics": True,
        },
    },
]

DEFAULT_TOPICS: List[Dict[str, Any]] = [
    {"name": "情感倾诉", "description": "Share what is on your mind"},
    {"name": "恋爱心得", "description": "Relationship stories and advice"},
    {"name": "自我成长", "description": "Personal growth and reflection"},
    {"name": "职场压力", "description": "Work, study and pressure"},
    {"name": "日常分享", "description": "Everyday moments"},
]


def _seed_rows(db: Database) -> int:
    inserted = 0
    for plan in DEFAULT_PLANS:
        exists = db.query(
            "SELECT id FROM membership_plans WHERE name = :name", {"name": plan["name"]}
        ).first()
        if exists:
            continue
        db.query(
            "INSERT INTO membership_plans (name, description, price, duration_days, features, is_active) "
            "VALUES (:name, :description, :price, :duration_days, :features, :is_active)",
            {**plan, "features": json.dumps(plan["features"]), "is_active": True},
        )
        inserted += 1

    for topic in DEFAULT_TOPICS:
        exists = db.query(
            "SELECT id FROM topics WHERE name = :name", {"name": topic["name"]}
        ).first()
        if exists:
            continue
        db.query(
            "INSERT INTO topics (name, description, posts_count, participants_count, is_active, is_featured) "
            "VALUES (:name, :description, 0, 0, :is_active, :is_featured)",
            {**topic, "is_active": True, "is_featured": True},
        )
        inserted += 1
    return inserted


def seed_defaults(session: Session) -> int:
    """Insert missing default plans and topics in one transaction; returns rows added."""
    inserted = Database(session).transaction(_seed_rows)
    if inserted:
        logger.info("Seeded %s default catalog rows", inserted)
    return inserted


def init_db(engine: Engine) -> None:
    import minilove.models.registry  # noqa: F401  (populate metadata)

    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        seed_defaults(session)
    finally:
        session.close()
