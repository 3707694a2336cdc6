"""Response envelope shared by every API route.

Successful responses are `{"success": true, "message"?: str, "data"?: ...}`; list
payloads put their rows under a named key next to a `pagination` block.
"""

from typing import Any, Dict, Optional


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def paged(key: str, items, pagination: Dict[str, Any], message: Optional[str] = None) -> Dict[str, Any]:
    return envelope({key: items, "pagination": pagination}, message)
