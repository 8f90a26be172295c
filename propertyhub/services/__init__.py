"""
Service layer for business logic implementation.
Contains services for accounts, listings, images, favorites, appointments,
AI search, administration and error handling.
"""

from .auth import AuthService
from .user import UserService
from .property import PropertyService
from .image import ImageService
from .favorite import FavoriteService
from .appointment import AppointmentService
from .notifications import EmailService
from .ai_search import AISearchService
from .location import LocationValidator
from .admin import AdminService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "UserService",
    "PropertyService",
    "ImageService",
    "FavoriteService",
    "AppointmentService",
    "EmailService",
    "AISearchService",
    "LocationValidator",
    "AdminService",
    "ErrorHandlerService"
]
