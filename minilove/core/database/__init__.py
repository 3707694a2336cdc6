"""Core database access helpers.

Provides the engine + SessionLocal for app use, a `get_db` dependency that guarantees
cleanup, and the raw-SQL `Database` adapter with `query`/`transaction` primitives.
"""

from minilove.models.base import Base

from .adapter import Database, QueryResult, atomic
from .query_helpers import (
    build_pagination,
    clamped_decrement,
    increment,
    insert_ignoring_conflicts,
    json_array_contains,
    normalize_page,
    paginate_query,
    with_select_loads,
)
from .session import SessionLocal, build_engine, engine, get_db, probe_engine

__all__ = [
    "Base",
    "Database",
    "QueryResult",
    "SessionLocal",
    "atomic",
    "build_engine",
    "build_pagination",
    "clamped_decrement",
    "engine",
    "get_db",
    "increment",
    "insert_ignoring_conflicts",
    "json_array_contains",
    "normalize_page",
    "paginate_query",
    "probe_engine",
    "with_select_loads",
]
