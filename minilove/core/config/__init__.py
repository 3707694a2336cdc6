"""Core configuration package.

Exposes a cached `settings` instance so imports are cheap and deterministic.
"""

from .environment import get_settings
from .settings import Settings, with_shipped_driver

settings = get_settings()

__all__ = ["Settings", "settings", "get_settings", "with_shipped_driver"]
