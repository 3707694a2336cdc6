"""HTTP client for the MiniLove API.

Every request carries `Authorization: Bearer <token>` when a token is available, and
any 401 response triggers the `on_unauthorized` hook before the error is raised.
The transport is a `requests.Session` by default; any object with a compatible
`request(method, url, ...)` method can be supplied instead.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"
DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    """Non-2xx response (or transport failure) with the server's error envelope."""

    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        code: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.payload = payload or {}

    @classmethod
    def from_response(cls, response) -> "ApiError":
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            return cls(
                response.status_code,
                error.get("message") or "Request failed",
                error.get("code"),
                payload,
            )
        return cls(response.status_code, f"Request failed with status {response.status_code}", payload=payload)


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        session=None,
        timeout: float = DEFAULT_TIMEOUT,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[Any], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.token_provider = token_provider or (lambda: None)
        self.on_unauthorized = on_unauthorized

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, *, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(None, "Network error, please try again later") from exc

        if response.status_code == 401 and self.on_unauthorized is not None:
            self.on_unauthorized(response)
        if response.status_code >= 400:
            raise ApiError.from_response(response)
        if not response.content:
            return {}
        return response.json()

    def get(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("DELETE", path, **kwargs)
