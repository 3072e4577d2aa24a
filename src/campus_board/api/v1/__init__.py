"""Version 1 API endpoints."""

from .endpoints import boards_router, messages_router, profiles_router

__all__ = [
    "boards_router",
    "messages_router",
    "profiles_router",
]
