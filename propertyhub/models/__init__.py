"""
Database models for the PropertyHub API.
Includes User, Property, PropertyImage, Favorite and Appointment models.
"""

from propertyhub.models.user import User, UserRole
from propertyhub.models.property import Property, PropertyCategory, PropertyStatus, TransactionType
from propertyhub.models.image import PropertyImage
from propertyhub.models.favorite import Favorite
from propertyhub.models.appointment import Appointment, AppointmentStatus

__all__ = [
    "User",
    "UserRole",
    "Property",
    "PropertyCategory",
    "PropertyStatus",
    "TransactionType",
    "PropertyImage",
    "Favorite",
    "Appointment",
    "AppointmentStatus",
]
