"""API Routers for Usage Stats."""

from .auth import router as auth_router
from .stats import router as stats_router
from .system import router as system_router
from .uploads import router as uploads_router

__all__ = [
    "auth_router",
    "stats_router",
    "system_router",
    "uploads_router",
]
