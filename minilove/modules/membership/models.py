"""Static membership pricing rows."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text
from sqlalchemy.sql.sqltypes import TIMESTAMP

from minilove.core.database import Base
from minilove.core.db_defaults import jsonb_type, timestamp_default


class MembershipPlan(Base):
    """Purchasable membership tier with its feature list."""

    __tablename__ = "membership_plans"

    id = Column(Integer, primary_key=True, nullable=False)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_days = Column(Integer, nullable=False)
    features = Column(jsonb_type(), default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=timestamp_default()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=timestamp_default(),
        onupdate=timestamp_default(),
    )
