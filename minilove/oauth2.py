"""Bearer-token auth for the API.

Responsibilities:
- Issue HS256 access tokens carrying the user id (`sub`) and a coarse role.
- Verify tokens and surface distinct 401 errors for missing, malformed and expired tokens.
- Provide FastAPI dependencies for required auth, optional (guest) auth and role checks.

Tokens are stateless: there is no revocation list, so logout is a client-side discard.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from minilove.core.config import settings
from minilove.core.database import get_db
from minilove.core.exceptions import (
    AccountDisabledException,
    AuthenticationException,
    InsufficientRoleException,
    InvalidTokenException,
    TokenExpiredException,
)
from minilove.modules.users.models import MembershipLevel, User, UserRole
from minilove.modules.users.schemas import TokenData

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix.lstrip('/')}/auth/login", auto_error=False
)

ROLE_USER = "user"
ROLE_PREMIUM = "premium"
ROLE_ADMIN = "admin"


def role_for(user: User) -> str:
    """Coarse token role: admin, then premium membership, else plain user."""
    if user.role == UserRole.ADMIN:
        return ROLE_ADMIN
    if user.membership_level == MembershipLevel.PREMIUM:
        return ROLE_PREMIUM
    return ROLE_USER


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Sign an access token for `user`."""
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": str(user.id),
        "role": role_for(user),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenData:
    """Return the token's identity or raise a 401 describing why it was rejected."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError as exc:
        logger.info("Rejected access token: %s", exc)
        raise InvalidTokenException()

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise InvalidTokenException()
    return TokenData(id=user_id, role=payload.get("role") or ROLE_USER)


def get_current_identity(
    request: Request, token: Optional[str] = Depends(oauth2_scheme)
) -> TokenData:
    if not token:
        raise AuthenticationException()
    identity = decode_access_token(token)
    request.state.user_id = identity.id
    return identity


def _load_active_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise InvalidTokenException()
    if not user.is_active:
        raise AccountDisabledException()
    return user


def get_current_user(
    identity: TokenData = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> User:
    """Authenticated user for the request; inactive accounts are rejected with 403."""
    return _load_active_user(db, identity.id)


def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like `get_current_user` but any token problem degrades to guest access."""
    if not token:
        return None
    try:
        identity = decode_access_token(token)
        user = _load_active_user(db, identity.id)
    except (AuthenticationException, AccountDisabledException):
        return None
    request.state.user_id = user.id
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """Dependency factory allowing only tokens whose role is in `roles`."""
    allowed = set(roles)

    def _dependency(
        identity: TokenData = Depends(get_current_identity),
        user: User = Depends(get_current_user),
    ) -> User:
        if identity.role not in allowed:
            raise InsufficientRoleException(sorted(allowed))
        return user

    return _dependency


get_current_admin = require_roles(ROLE_ADMIN)
get_premium_user = require_roles(ROLE_PREMIUM, ROLE_ADMIN)
