"""Authentication router: registration, login, account profile and token refresh."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from minilove import oauth2
from minilove.core.database import get_db
from minilove.core.middleware.rate_limit import AUTH_LIMIT, limiter
from minilove.modules.users.models import User
from minilove.modules.users.schemas import (
    AccountUpdate,
    AuthPayload,
    PasswordChange,
    UserCreate,
    UserLogin,
    UserOut,
    UserProfile,
)
from minilove.schemas import envelope
from minilove.services.users.service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Provide a UserService instance via FastAPI DI."""
    return UserService(db)


def _auth_payload(user: User) -> AuthPayload:
    return AuthPayload(
        user=UserOut.model_validate(user),
        token=oauth2.create_access_token(user),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def register(
    request: Request,
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
):
    """
    Create an account and sign it in.

    Process:
      - Shape checks (username charset/length, email format, password length, phone format).
      - Username, email and phone must be unused (409 otherwise).
      - Password is stored as a bcrypt hash.

    Returns:
      201 with the new user and an access token.
    """
    user = service.register(payload)
    return envelope(_auth_payload(user), "Registration successful")


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    payload: UserLogin,
    service: UserService = Depends(get_user_service),
):
    """Sign in with a username or email address; 401 on bad credentials."""
    user = service.authenticate(payload.username, payload.password)
    return envelope(_auth_payload(user), "Login successful")


@router.get("/profile")
def get_profile(
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Current user with activity stats (posts, comments, likes, follows)."""
    stats = service.compute_stats(current_user)
    profile = UserProfile(
        **UserOut.model_validate(current_user).model_dump(), stats=stats
    )
    return envelope({"user": profile})


@router.put("/profile")
def update_profile(
    payload: AccountUpdate,
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Edit account fields; username/email/phone stay unique (409)."""
    user = service.update_account(current_user, payload)
    return envelope({"user": UserOut.model_validate(user)}, "Profile updated")


@router.put("/password")
def change_password(
    payload: PasswordChange,
    current_user: User = Depends(oauth2.get_current_user),
    service: UserService = Depends(get_user_service),
):
    service.change_password(current_user, payload)
    return envelope(message="Password updated")


@router.post("/logout")
def logout(current_user: User = Depends(oauth2.get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    logger.info("User %s signed out", current_user.id)
    return envelope(message="Logged out")


@router.get("/verify")
def verify_token(current_user: User = Depends(oauth2.get_current_user)):
    return envelope({"valid": True, "user": UserOut.model_validate(current_user)})


@router.post("/refresh")
def refresh_token(current_user: User = Depends(oauth2.get_current_user)):
    """Issue a fresh token with the user's current role."""
    return envelope(
        {"token": oauth2.create_access_token(current_user)}, "Token refreshed"
    )
