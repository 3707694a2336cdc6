"""Client-side session handling for the MiniLove API.

- `storage`: persistent key/value store for the token and cached user.
- `http`: requests-based API client with bearer injection and 401 handling.
- `store`: authentication state, actions and notifications.
- `router`: named routes with auth/guest guards.
"""

from .http import ApiClient, ApiError
from .router import Location, NavigationResult, Route, Router
from .storage import FileStorage, MemoryStorage
from .store import AuthStore, Notification

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthStore",
    "FileStorage",
    "Location",
    "MemoryStorage",
    "NavigationResult",
    "Notification",
    "Route",
    "Router",
]
