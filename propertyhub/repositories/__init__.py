"""
Repository layer for database operations.
"""

from propertyhub.repositories.base import BaseRepository
from propertyhub.repositories.user import UserRepository
from propertyhub.repositories.property import PropertyRepository, PropertySearchFilters
from propertyhub.repositories.image import PropertyImageRepository
from propertyhub.repositories.favorite import FavoriteRepository
from propertyhub.repositories.appointment import AppointmentRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PropertyRepository",
    "PropertySearchFilters",
    "PropertyImageRepository",
    "FavoriteRepository",
    "AppointmentRepository",
]
