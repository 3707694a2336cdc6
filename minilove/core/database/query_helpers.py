"""
Query helpers for pagination, eager loading and counter arithmetic.
"""

import math
from typing import Any, Dict, List, Tuple

from sqlalchemy import case, func, literal, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Query, Session, selectinload


def with_select_loads(query: Query, *relationships) -> Query:
    """Apply selectinload for multiple relationships (better for collections)."""
    for rel in relationships:
        query = query.options(selectinload(rel))
    return query


def normalize_page(page: int = 1, limit: int = 20, max_limit: int = 100) -> Tuple[int, int]:
    """Clamp page/limit into the accepted range."""
    page = max(1, int(page or 1))
    limit = min(max(1, int(limit or 1)), max_limit)
    return page, limit


def build_pagination(total: int, page: int, limit: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def paginate_query(query: Query, page: int = 1, limit: int = 20) -> Tuple[List[Any], Dict[str, Any]]:
    """Return one page of rows and the pagination block for the whole query."""
    page, limit = normalize_page(page, limit)
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, build_pagination(total, page, limit)


def increment(column, amount: int = 1):
    """SQL expression adding `amount` to a counter column."""
    return column + amount


def clamped_decrement(column, amount: int = 1):
    """SQL expression subtracting `amount` from a counter column, floored at zero."""
    return case((column >= amount, column - amount), else_=0)


def insert_ignoring_conflicts(session: Session, model, values: Dict[str, Any]) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING; True when a row was actually written."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing()
    else:
        raise NotImplementedError(f"Unsupported dialect for upsert: {dialect}")
    return (session.execute(stmt).rowcount or 0) > 0


def json_array_contains(session: Session, column, value):
    """Filter clause matching rows whose JSON array `column` holds `value` as an element."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return column.contains([value])
    if dialect == "sqlite":
        elements = func.json_each(column).table_valued("value").alias("elements")
        return (
            select(literal(1))
            .select_from(elements)
            .where(elements.c.value == value)
            .exists()
        )
    raise NotImplementedError(f"Unsupported dialect for JSON containment: {dialect}")


__all__ = [
    "with_select_loads",
    "normalize_page",
    "build_pagination",
    "paginate_query",
    "increment",
    "clamped_decrement",
    "insert_ignoring_conflicts",
    "json_array_contains",
]

