"""Database engine and session management utilities.

- Builds per-backend engine kwargs (SQLite vs Postgres) with safe pooling defaults.
- Picks the backend from settings: SQLite when `USE_SQLITE` is set or no `DATABASE_URL`
  exists, otherwise PostgreSQL, falling back to SQLite when the server cannot be reached.
- Uses the test database automatically when APP_ENV=test.
- Exposes a SessionLocal factory and a scoped `get_db` dependency with guaranteed cleanup.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from minilove.core.config import Settings, settings, with_shipped_driver

logger = logging.getLogger(__name__)


def _engine_kwargs(database_url: str, pool_size: int = 20, connect_timeout: int = 2) -> dict:
    """Return engine keyword arguments tuned per backend (SQLite vs pooled Postgres)."""
    url = make_url(database_url)
    if url.drivername.startswith("sqlite"):
        return {
            "pool_pre_ping": True,
            "connect_args": {"check_same_thread": False},
            "poolclass": NullPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_size": pool_size,
        "max_overflow": 10,
        "pool_recycle": 300,
        "connect_args": {
            "options": "-c timezone=utc",
            "application_name": "minilove_api",
            "connect_timeout": connect_timeout,
        },
    }


def json_dumps(value) -> str:
    # Keep non-ASCII tags searchable with LIKE.
    return json.dumps(value, ensure_ascii=False)


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.drivername.startswith("sqlite") and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _register_sqlite_functions(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _add_sqlite_functions(dbapi_connection, connection_record):
        """Provide SQLite equivalents for PostgreSQL functions used in defaults."""

        def _now():
            return datetime.now(timezone.utc).isoformat(" ")

        dbapi_connection.create_function("now", 0, _now)


def _create_engine(database_url: str, config: Settings) -> Engine:
    database_url = with_shipped_driver(database_url)
    _ensure_sqlite_dir(database_url)
    engine = create_engine(
        database_url,
        json_serializer=json_dumps,
        **_engine_kwargs(
            database_url, config.database_pool_size, config.database_connect_timeout
        ),
    )
    if engine.dialect.name == "sqlite":
        _register_sqlite_functions(engine)
    return engine


def probe_engine(engine: Engine) -> bool:
    """Return True when a trivial round trip to the database succeeds."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.error("Database connection failed: %s", exc)
        return False


def build_engine(database_url: str | None = None, config: Settings | None = None) -> Engine:
    """Create a SQLAlchemy engine using application settings by default.

    Respects APP_ENV=test by choosing the test DSN to protect development data.
    A PostgreSQL URL that cannot be reached is replaced by the SQLite file engine.
    """
    config = config or settings
    if database_url is None:
        use_test_url = config.environment.lower() == "test"
        database_url = config.get_database_url(use_test=use_test_url)

    if make_url(database_url).drivername.startswith("sqlite"):
        logger.info("Using SQLite database at %s", make_url(database_url).database)
        return _create_engine(database_url, config)

    try:
        engine = _create_engine(database_url, config)
    except (ImportError, SQLAlchemyError) as exc:
        logger.error("Could not create PostgreSQL engine: %s", exc)
    else:
        if probe_engine(engine):
            logger.info("Connected to PostgreSQL database")
            return engine
        engine.dispose()

    logger.warning("PostgreSQL unavailable, falling back to SQLite")
    return _create_engine(config.sqlite_url, config)


engine: Engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session with guaranteed cleanup."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
