"""Lightweight models package initialiser.

- Exposes the shared SQLAlchemy `Base`.
- Lazily exposes all domain models via module-level attribute access so importing
  `minilove.core.database` (which pulls `Base`) doesn't eagerly import every model.
"""

from minilove.models.base import Base

__all__ = ["Base"]


def __getattr__(name: str):
    """
    Lazily load domain models to avoid circular imports during early DB setup.
    """
    import importlib

    _registry = importlib.import_module("minilove.models.registry")

    if hasattr(_registry, name):
        return getattr(_registry, name)
    raise AttributeError(f"module 'minilove.models' has no attribute {name!r}")
