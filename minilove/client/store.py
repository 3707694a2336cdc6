"""Authentication state for API clients.

Holds the current user, token, a loading flag and short-lived notifications. The token
and user are mirrored into storage so a new store picks the session back up through
`initialize()`. A 401 from any call made with a token clears the session.
"""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from minilove.client.http import ApiClient, ApiError
from minilove.client.storage import TOKEN_KEY, USER_KEY, MemoryStorage

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("success", "error", "warning", "info")
DEFAULT_NOTIFICATION_TIMEOUT = 5.0
SESSION_EXPIRED_MESSAGE = "Your session has expired, please sign in again"


@dataclass
class Notification:
    id: str
    type: str
    message: str
    timeout: float = DEFAULT_NOTIFICATION_TIMEOUT
    created_at: float = field(default_factory=time.monotonic)

    def expired(self, now: float) -> bool:
        return bool(self.timeout) and now - self.created_at >= self.timeout


class AuthStore:
    def __init__(
        self,
        storage=None,
        *,
        base_url: str = "http://localhost:8000/api/v1",
        session=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.clock = clock
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = None
        self.loading = False
        self._notifications: List[Notification] = []
        self._ids = itertools.count(1)
        self.api = ApiClient(
            base_url,
            session=session,
            token_provider=lambda: self.token,
            on_unauthorized=self._handle_unauthorized,
        )

    # ------------------------------------------------------------------ getters

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None

    @property
    def membership_level(self) -> Optional[str]:
        return (self.user or {}).get("membership_level")

    @property
    def is_premium(self) -> bool:
        return self.membership_level == "premium"

    @property
    def is_basic(self) -> bool:
        return self.membership_level == "basic"

    @property
    def is_free(self) -> bool:
        return self.membership_level in (None, "free")

    @property
    def notifications(self) -> List[Notification]:
        now = self.clock()
        self._notifications = [n for n in self._notifications if not n.expired(now)]
        return list(self._notifications)

    # ------------------------------------------------------------------ notifications

    def add_notification(self, type: str, message: str, timeout: float = DEFAULT_NOTIFICATION_TIMEOUT) -> str:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")
        notification = Notification(
            id=str(next(self._ids)),
            type=type,
            message=message,
            timeout=timeout or DEFAULT_NOTIFICATION_TIMEOUT,
            created_at=self.clock(),
        )
        self._notifications.append(notification)
        return notification.id

    def remove_notification(self, notification_id: str) -> None:
        self._notifications = [n for n in self._notifications if n.id != notification_id]

    # ------------------------------------------------------------------ session

    def initialize(self) -> None:
        """Restore token and user from storage."""
        self.token = self.storage.get(TOKEN_KEY)
        user = self.storage.get(USER_KEY)
        self.user = user if isinstance(user, dict) else None

    def set_auth(self, user: Dict[str, Any], token: str) -> None:
        self.user = user
        self.token = token
        self.storage.set(TOKEN_KEY, token)
        self.storage.set(USER_KEY, user)

    def set_user(self, user: Dict[str, Any]) -> None:
        self.user = user
        self.storage.set(USER_KEY, user)

    def clear_auth(self) -> None:
        self.user = None
        self.token = None
        self.storage.remove(TOKEN_KEY)
        self.storage.remove(USER_KEY)

    def _handle_unauthorized(self, response) -> None:
        if self.token:
            logger.info("Session rejected by the server; clearing credentials")
            self.clear_auth()
            self.add_notification("error", SESSION_EXPIRED_MESSAGE)

    def _run(self, action: Callable[[], Any], *, success: Optional[str] = None) -> bool:
        self.loading = True
        try:
            action()
        except ApiError as exc:
            if exc.status_code != 401 or not any(
                n.message == SESSION_EXPIRED_MESSAGE for n in self._notifications
            ):
                self.add_notification("error", exc.message)
            return False
        finally:
            self.loading = False
        if success:
            self.add_notification("success", success)
        return True

    # ------------------------------------------------------------------ actions

    def register(self, data: Dict[str, Any]) -> bool:
        def action():
            body = self.api.post("/auth/register", json=data)["data"]
            self.set_auth(body["user"], body["token"])

        return self._run(action, success="Registration successful")

    def login(self, username: str, password: str) -> bool:
        def action():
            body = self.api.post(
                "/auth/login", json={"username": username, "password": password}
            )["data"]
            self.set_auth(body["user"], body["token"])

        return self._run(action, success="Welcome back")

    def logout(self) -> None:
        """Tell the server when possible; local credentials are cleared regardless."""
        if self.token:
            try:
                self.api.post("/auth/logout")
            except ApiError as exc:
                logger.info("Logout request failed: %s", exc.message)
        self.clear_auth()
        self.add_notification("info", "You have been signed out")

    def fetch_profile(self) -> bool:
        if not self.token:
            return False

        def action():
            self.set_user(self.api.get("/auth/profile")["data"]["user"])

        return self._run(action)

    def update_profile(self, data: Dict[str, Any]) -> bool:
        def action():
            self.set_user(self.api.put("/auth/profile", json=data)["data"]["user"])

        return self._run(action, success="Profile updated")

    def update_password(self, current_password: str, new_password: str) -> bool:
        def action():
            self.api.put(
                "/auth/password",
                json={"current_password": current_password, "new_password": new_password},
            )

        return self._run(action, success="Password updated")

    def check_auth_status(self) -> bool:
        """Validate the stored token with the server; clears the session when rejected."""
        if not self.token:
            return False
        try:
            body = self.api.get("/auth/verify")["data"]
        except ApiError:
            self.clear_auth()
            return False
        self.set_user(body["user"])
        return True
