# run_migrations.py
from alembic import command
from alembic.config import Config

from minilove.core.config import settings
from minilove.core.database import SessionLocal
from minilove.core.database.seed import seed_defaults
from minilove.core.logging_config import setup_logging

if __name__ == "__main__":
    setup_logging(log_level=settings.log_level, use_json=settings.use_json_logs)
    alembic_cfg = Config("alembic.ini")
    command.upgrade(alembic_cfg, "head")
    session = SessionLocal()
    try:
        seed_defaults(session)
    finally:
        session.close()
