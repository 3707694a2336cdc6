"""Application factory helpers to keep minilove/main.py lightweight."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from minilove.api.router import api_router
from minilove.core.config import settings
from minilove.core.database import Database, engine, get_db
from minilove.core.database.seed import init_db
from minilove.core.error_handlers import register_exception_handlers
from minilove.core.logging_config import setup_logging
from minilove.core.middleware import LoggingMiddleware, limiter

logger = logging.getLogger(__name__)


def _configure_app(app: FastAPI) -> None:
    app.add_middleware(LoggingMiddleware)

    origins = settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(api_router)


def _register_routes(app: FastAPI) -> None:
    @app.get("/", tags=["Health"])
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.api_version,
            "docs": "/docs",
            "api": settings.api_prefix,
        }

    @app.get("/health", tags=["Health"])
    def health(db: Session = Depends(get_db)):
        database_ok = Database(db).test_connection()
        return {
            "status": "ok" if database_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": settings.app_name,
            "version": settings.api_version,
            "environment": settings.environment,
            "database": {
                "dialect": db.get_bind().dialect.name,
                "connected": database_ok,
            },
        }

    @app.get("/livez", tags=["Health"])
    async def livez():
        return {"status": "ok"}

    @app.get("/readyz", tags=["Health"])
    def readyz(db: Session = Depends(get_db)):
        if not Database(db).test_connection():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Database is not reachable",
            )
        return {"status": "ready", "details": {"database": "connected"}}


def _lifespan_factory():
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_schema:
            init_db(engine)
        logger.info("Application startup complete")

        yield

        logger.info("Application shutdown")

    return lifespan


def create_app() -> FastAPI:
    """
    Build and configure the FastAPI application.

    Logging is configured first so that everything after it (schema bootstrap,
    router registration) is captured.
    """
    setup_logging(
        log_level=settings.log_level,
        log_dir=settings.log_dir if settings.log_to_files else None,
        app_name=settings.app_name,
        use_json=settings.use_json_logs,
        use_colors=settings.environment.lower() != "production",
    )

    app = FastAPI(
        title="MiniLove API",
        description="Social posting API: accounts, posts, comments, likes, bookmarks and follows",
        version=settings.api_version,
        lifespan=_lifespan_factory(),
        default_response_class=ORJSONResponse,
    )

    app.state.environment = settings.environment
    app.state.limiter = limiter

    _configure_app(app)
    _register_routes(app)
    register_exception_handlers(app)

    return app


__all__ = ["create_app"]
