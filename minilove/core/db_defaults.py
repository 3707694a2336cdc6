"""Database-aware helpers for SQL column defaults and portable column types."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.sql import text


def timestamp_default():
    """Return a server-side timestamp default portable across dialects."""
    return text("CURRENT_TIMESTAMP")


def jsonb_type():
    """
    Return a JSONB type that stores JSON on SQLite.
    """
    return PG_JSONB().with_variant(JSON, "sqlite")


__all__ = ["timestamp_default", "jsonb_type"]
