"""Raw-SQL persistence adapter exposing `query` and `transaction` primitives.

Services use the ORM for most work; the adapter covers the places where a plain
parameterized statement is clearer (health probes, seeding, counter audits) and
gives every caller the same BEGIN/COMMIT/ROLLBACK contract:

- `transaction(fn)` commits when `fn` returns and rolls back, then re-raises, on any error.
- `atomic(session)` is the context-manager form used inside service methods.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class QueryResult:
    """Rows returned by a statement plus the driver-reported affected row count."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        row = self.first()
        if not row:
            return None
        return next(iter(row.values()))


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Commit the session on success; roll back and re-raise on any error."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


class Database:
    """Thin wrapper over a SQLAlchemy session offering raw query/transaction calls."""

    def __init__(self, session: Session):
        self.session = session

    @property
    def dialect(self) -> str:
        return self.session.get_bind().dialect.name

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Execute a parameterized statement and return rows as dicts."""
        result = self.session.execute(text(sql), dict(params or {}))
        rows: List[Dict[str, Any]] = []
        if result.returns_rows:
            rows = [dict(row) for row in result.mappings().all()]
        rowcount = result.rowcount if result.rowcount is not None else 0
        if rowcount < 0:
            rowcount = len(rows)
        return QueryResult(rows=rows, rowcount=rowcount)

    def transaction(self, fn: Callable[["Database"], T]) -> T:
        """Run `fn` inside a transaction; commit on success, rollback and re-raise on error."""
        try:
            with atomic(self.session):
                return fn(self)
        except Exception as exc:
            logger.error("Transaction rolled back: %s", exc)
            raise

    def test_connection(self) -> bool:
        try:
            self.query("SELECT 1")
            return True
        except SQLAlchemyError as exc:
            logger.error("Database connection test failed: %s", exc)
            return False
