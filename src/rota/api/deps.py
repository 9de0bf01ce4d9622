"""FastAPI dependencies."""

from __future__ import annotations

from ..services.sessions import SessionRegistry, registry


def get_registry() -> SessionRegistry:
    return registry
