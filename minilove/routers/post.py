"""Posts router: public feeds, detail reads, authoring, likes, bookmarks and premium feeds."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from minilove import oauth2
from minilove.core.database import get_db
from minilove.core.middleware.rate_limit import WRITE_LIMIT, limiter
from minilove.modules.posts.schemas import PostCreate, PostUpdate, Timeframe
from minilove.modules.users.models import User
from minilove.schemas import envelope, paged
from minilove.services.comments.service import CommentService
from minilove.services.posts.catalog import CatalogService
from minilove.services.posts.service import PostService

router = APIRouter(prefix="/posts", tags=["Posts"])


def get_post_service(db: Session = Depends(get_db)) -> PostService:
    """Provide a PostService instance via FastAPI DI."""
    return PostService(db)


def get_comment_service(db: Session = Depends(get_db)) -> CommentService:
    return CommentService(db)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


# Static paths are declared before "/{post_id}" so they are not captured by it.


@router.get("")
def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = Query(None, max_length=50),
    tag: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, max_length=100),
    viewer: Optional[User] = Depends(oauth2.get_optional_user),
    service: PostService = Depends(get_post_service),
):
    """
    Public, published posts, newest first.

    Parameters:
      - category / tag / search: optional filters.
      - page / limit: pagination (limit <= 100).

    Signed-in viewers also get `is_liked` / `is_bookmarked` per post.
    """
    posts, pagination = service.list_posts(
        viewer=viewer, page=page, limit=limit, category=category, tag=tag, search=search
    )
    return paged("posts", posts, pagination)


@router.get("/featured")
def list_featured(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: Optional[User] = Depends(oauth2.get_optional_user),
    service: PostService = Depends(get_post_service),
):
    posts, pagination = service.list_featured(viewer=viewer, page=page, limit=limit)
    return paged("posts", posts, pagination)


@router.get("/trending")
def list_trending(
    timeframe: Timeframe = Query(Timeframe.WEEK),
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[User] = Depends(oauth2.get_optional_user),
    service: PostService = Depends(get_post_service),
):
    """Ranked by likes*2 + comments*3 + views within the timeframe; ties go to the newest."""
    posts = service.list_trending(viewer=viewer, timeframe=timeframe, limit=limit)
    return envelope({"posts": posts, "timeframe": timeframe.value})


@router.get("/premium/feed")
def premium_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(oauth2.get_premium_user),
    service: PostService = Depends(get_post_service),
):
    posts, pagination = service.premium_feed(user=current_user, page=page, limit=limit)
    return paged("posts", posts, pagination)


@router.get("/premium/topics")
def premium_topics(
    current_user: User = Depends(oauth2.get_premium_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return envelope({"topics": service.premium_topics()})


@router.get("/user/{user_id}")
def list_user_posts(
    user_id: int = Path(..., gt=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: Optional[User] = Depends(oauth2.get_optional_user),
    service: PostService = Depends(get_post_service),
):
    """An author's posts as the viewer is allowed to see them."""
    posts, pagination = service.list_user_posts(
        user_id, viewer=viewer, page=page, limit=limit
    )
    return paged("posts", posts, pagination)


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_post(
    request: Request,
    payload: PostCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    post = service.create_post(user=current_user, payload=payload)
    return envelope({"post": post}, "Post created")


@router.get("/{post_id}")
def read_post(
    post_id: int = Path(..., gt=0),
    viewer: Optional[User] = Depends(oauth2.get_optional_user),
    service: PostService = Depends(get_post_service),
):
    """
    Read one post and count the view.

    Visibility:
      - public: anyone.
      - private: author only (403 for others, 401 for guests).
      - friends_only: author and approved followers.
    """
    return envelope({"post": service.get_post(post_id, viewer=viewer)})


@router.get("/{post_id}/comments")
def list_post_comments(
    post_id: int = Path(..., gt=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    viewer: Optional[User] = Depends(oauth2.get_optional_user),
    service: CommentService = Depends(get_comment_service),
):
    comments, pagination = service.list_post_comments(
        post_id, viewer=viewer, page=page, limit=limit
    )
    return paged("comments", comments, pagination)


@router.put("/{post_id}")
@limiter.limit(WRITE_LIMIT)
def update_post(
    request: Request,
    payload: PostUpdate,
    post_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    post = service.update_post(user=current_user, post_id=post_id, payload=payload)
    return envelope({"post": post}, "Post updated")


@router.delete("/{post_id}")
@limiter.limit(WRITE_LIMIT)
def delete_post(
    request: Request,
    post_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    service.delete_post(user=current_user, post_id=post_id)
    return envelope(message="Post deleted")


@router.post("/{post_id}/like", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def like_post(
    request: Request,
    post_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    likes_count = service.like_post(user=current_user, post_id=post_id)
    return envelope({"liked": True, "likes_count": likes_count}, "Post liked")


@router.delete("/{post_id}/like")
@limiter.limit(WRITE_LIMIT)
def unlike_post(
    request: Request,
    post_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    likes_count = service.unlike_post(user=current_user, post_id=post_id)
    return envelope({"liked": False, "likes_count": likes_count}, "Like removed")


@router.post("/{post_id}/bookmark", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def bookmark_post(
    request: Request,
    post_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    service.bookmark_post(user=current_user, post_id=post_id)
    return envelope({"bookmarked": True}, "Post bookmarked")


@router.delete("/{post_id}/bookmark")
@limiter.limit(WRITE_LIMIT)
def unbookmark_post(
    request: Request,
    post_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: PostService = Depends(get_post_service),
):
    service.unbookmark_post(user=current_user, post_id=post_id)
    return envelope({"bookmarked": False}, "Bookmark removed")
