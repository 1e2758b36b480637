from __future__ import annotations

from .routes_apps import router as apps_router
from .routes_commands import router as commands_router
from .routes_dispatch import router as dispatch_router
from .routes_health import router as health_router
from .routes_history import router as history_router
from .routes_session import router as session_router

__all__ = [
    "health_router",
    "dispatch_router",
    "session_router",
    "history_router",
    "commands_router",
    "apps_router",
]
