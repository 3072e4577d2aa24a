"""API endpoint modules for version 1."""

from .boards import router as boards_router
from .messages import router as messages_router
from .profiles import router as profiles_router

__all__ = [
    "boards_router",
    "messages_router",
    "profiles_router",
]
