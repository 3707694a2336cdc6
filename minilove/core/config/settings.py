"""Application settings loaded from environment with safe fallbacks.

Environment precedence:
- Loads `.env` from the repo root before reading process env vars.
- Most values are pulled straight from env; booleans go through `_env_flag` so `"0"/"false"` work.
- CORS is normalized from `CORS_ORIGINS` (comma-separated) with a local-dev default allowlist.

Key expectations (defaults in parentheses):
- `APP_ENV` controls settings class selection (`development` default).
- Database: `DATABASE_URL` selects PostgreSQL; `USE_SQLITE=true` or a missing URL selects
  SQLite at `SQLITE_PATH` (`./data/minilove_dev.db`).
- Tokens: `JWT_SECRET`, `JWT_ALGORITHM` (`HS256`), `ACCESS_TOKEN_EXPIRE_MINUTES` (7 days).
"""

import logging
import os
from pathlib import Path
from typing import Annotated, ClassVar, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy.engine import make_url

# minilove/core/config/settings.py -> repo root is three levels up
BASE_DIR = Path(__file__).resolve().parents[3]


load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = "./data/minilove_dev.db"
SEVEN_DAYS_MINUTES = 7 * 24 * 60


def _env_flag(name: str, *, default: Optional[bool] = False) -> Optional[bool]:
    """
    Helper to parse boolean-like environment variables.
    """
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def with_shipped_driver(database_url: str) -> str:
    """Pin a driverless PostgreSQL URL to psycopg2, the driver installed with the project."""
    url = make_url(database_url)
    if url.drivername in ("postgres", "postgresql"):
        return url.set(drivername="postgresql+psycopg2").render_as_string(hide_password=False)
    return database_url


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Behavior highlights:
    - Loads `.env` at repo root, then lets process env override.
    - Backend selection mirrors the persistence adapter: explicit SQLite flag wins,
      otherwise a configured `DATABASE_URL` means PostgreSQL.
    - CORS normalized once to avoid mutation side effects in settings instances.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = os.getenv("APP_NAME", "minilove-api")
    api_prefix: str = os.getenv("API_PREFIX", "/api/v1")
    api_version: str = os.getenv("API_VERSION", "1.0.0")

    database_url: Optional[str] = os.getenv("DATABASE_URL")
    test_database_url: Optional[str] = os.getenv("TEST_DATABASE_URL")
    use_sqlite: bool = bool(_env_flag("USE_SQLITE", default=False))
    sqlite_path: str = os.getenv("SQLITE_PATH", DEFAULT_SQLITE_PATH)
    database_pool_size: int = int(os.getenv("DATABASE_POOL_SIZE", 20))
    database_connect_timeout: int = int(os.getenv("DATABASE_CONNECT_TIMEOUT", 2))
    auto_create_schema: bool = bool(_env_flag("AUTO_CREATE_SCHEMA", default=True))

    environment: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: str = os.getenv("LOG_DIR", "logs")
    use_json_logs: bool = bool(_env_flag("USE_JSON_LOGS", default=False))
    log_to_files: bool = bool(_env_flag("LOG_TO_FILES", default=False))
    cors_origins: Annotated[list[str], NoDecode] = []
    rate_limit_default: str = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")

    jwt_secret: str = os.getenv("JWT_SECRET", "minilove-dev-secret-change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", SEVEN_DAYS_MINUTES)
    )

    default_page_size: int = 20
    max_page_size: int = 100

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        """`CORS_ORIGINS` is a comma-separated list."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        env_override = os.getenv("APP_ENV")
        if env_override:
            object.__setattr__(self, "environment", env_override)

        if not self.cors_origins:
            object.__setattr__(
                self,
                "cors_origins",
                ["http://localhost:3000", "http://localhost:5173"],
            )

        if self.environment.lower() == "production" and self.jwt_secret.startswith(
            "minilove-dev"
        ):
            logger.warning("JWT_SECRET is not set; using the development secret.")

    @property
    def sqlite_url(self) -> str:
        path = Path(self.sqlite_path)
        if not path.is_absolute():
            path = (BASE_DIR / path).resolve()
        return f"sqlite:///{path}"

    @property
    def prefers_sqlite(self) -> bool:
        return self.use_sqlite or not self.database_url

    def get_database_url(self, *, use_test: bool = False) -> str:
        """Resolve the SQLAlchemy database URL for runtime or tests.

        Priority: test URL when requested, then the SQLite flag, then `DATABASE_URL`,
        finally the SQLite file at `sqlite_path`.
        """
        if use_test:
            return self.test_database_url or "sqlite:///./tests/test.db"

        if self.prefers_sqlite:
            return self.sqlite_url

        return self.database_url
