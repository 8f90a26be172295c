"""
API route handlers for the PropertyHub API.
Provides organized routing for different API endpoints.
"""

from .auth import router as auth_router
from .users import router as users_router
from .properties import router as properties_router
from .images import router as images_router
from .favorites import router as favorites_router
from .appointments import router as appointments_router
from .search import router as search_router
from .admin import router as admin_router

__all__ = [
    "auth_router",
    "users_router",
    "properties_router",
    "images_router",
    "favorites_router",
    "appointments_router",
    "search_router",
    "admin_router",
]
