"""Comments router: create, edit, soft delete and like comments."""

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.orm import Session

from minilove import oauth2
from minilove.core.database import get_db
from minilove.core.middleware.rate_limit import WRITE_LIMIT, limiter
from minilove.modules.posts.schemas import CommentCreate, CommentUpdate
from minilove.modules.users.models import User
from minilove.schemas import envelope
from minilove.services.comments.service import CommentService

router = APIRouter(prefix="/comments", tags=["Comments"])


def get_comment_service(db: Session = Depends(get_db)) -> CommentService:
    """Provide a CommentService instance via FastAPI DI."""
    return CommentService(db)


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_comment(
    request: Request,
    payload: CommentCreate,
    current_user: User = Depends(oauth2.get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    """
    Comment on a post, optionally as a reply.

    Process:
      - The post must be published and readable by the caller.
      - A parent comment must exist and belong to the same post.
      - The post's comment counter moves in the same transaction.
    """
    comment = service.create_comment(current_user=current_user, payload=payload)
    return envelope({"comment": comment}, "Comment created")


@router.put("/{comment_id}")
@limiter.limit(WRITE_LIMIT)
def update_comment(
    request: Request,
    payload: CommentUpdate,
    comment_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    comment = service.update_comment(
        current_user=current_user, comment_id=comment_id, payload=payload
    )
    return envelope({"comment": comment}, "Comment updated")


@router.delete("/{comment_id}")
@limiter.limit(WRITE_LIMIT)
def delete_comment(
    request: Request,
    comment_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    service.delete_comment(current_user=current_user, comment_id=comment_id)
    return envelope(message="Comment deleted")


@router.post("/{comment_id}/like", status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def like_comment(
    request: Request,
    comment_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    likes_count = service.like_comment(current_user=current_user, comment_id=comment_id)
    return envelope({"liked": True, "likes_count": likes_count}, "Comment liked")


@router.delete("/{comment_id}/like")
@limiter.limit(WRITE_LIMIT)
def unlike_comment(
    request: Request,
    comment_id: int = Path(..., gt=0),
    current_user: User = Depends(oauth2.get_current_user),
    service: CommentService = Depends(get_comment_service),
):
    likes_count = service.unlike_comment(
        current_user=current_user, comment_id=comment_id
    )
    return envelope({"liked": False, "likes_count": likes_count}, "Like removed")
