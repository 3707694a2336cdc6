"""Central API router: every feature router mounted under the versioned prefix."""

from fastapi import APIRouter

from minilove.core.config import settings
from minilove.routers import auth, catalog, comment, post, user

api_router = APIRouter(prefix=settings.api_prefix)

api_router.include_router(auth.router)
api_router.include_router(user.router)
api_router.include_router(post.router)
api_router.include_router(comment.router)
api_router.include_router(catalog.router)

__all__ = ["api_router"]
